import os
import re

from dotenv import find_dotenv, load_dotenv

_ENV_ALIASES = {"dev": "development", "prod": "production", "stg": "staging"}


def _load_env_files() -> None:
    """
    Load settings files without overriding variables already set in the OS.

    A base .env is always read. ENV_FILE, when set, names the only extra file
    to read; otherwise .env.<environment> is tried (dev/prod/stg aliases
    resolve to their long names first).
    """
    for candidate in _env_file_candidates():
        path = candidate if os.path.isabs(candidate) else find_dotenv(candidate, usecwd=True)
        if path and os.path.exists(path):
            load_dotenv(path, override=False)


def _env_file_candidates() -> list[str]:
    candidates = [".env"]
    explicit = os.environ.get("ENV_FILE")
    if explicit:
        return candidates + [explicit]

    env_name = (os.environ.get("ENVIRONMENT") or os.environ.get("ENV") or "").strip().lower()
    if env_name:
        resolved = _ENV_ALIASES.get(env_name, env_name)
        candidates.append(f".env.{resolved}")
        if resolved != env_name:
            candidates.append(f".env.{env_name}")
    return candidates


_load_env_files()


def _get_int_env(var_name: str, default_value: int) -> int:
    """
    Integer setting. Tolerates stray whitespace, a trailing ';' or text around
    the number ("8060 # api"); anything unparseable gives the default.
    """
    text = str(os.environ.get(var_name, default_value)).strip().rstrip(";")
    try:
        return int(text)
    except ValueError:
        match = re.search(r"[-+]?\d+", text)
        return int(match.group(0)) if match else int(default_value)


def _get_float_env(var_name: str, default_value: float) -> float:
    raw = str(os.environ.get(var_name, default_value)).strip().rstrip(";")
    try:
        return float(raw)
    except ValueError:
        return float(default_value)


# === Environment Configuration ===
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")  # development, staging, production

# === Server Configuration ===
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _get_int_env("SERVER_PORT", 8060)
DEBUG = os.environ.get("DEBUG", "true").lower() == "true"

# === Logging ===
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()


# === CORS Configuration ===
def _get_cors_origins() -> list[str]:
    """
    Return CORS origins from env or a safe default.
    Example env format:
      CORS_ORIGINS="http://localhost:3000,https://trips.example.com"
    """
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        # Default to permissive wildcard for local/dev if not provided
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ORIGINS = _get_cors_origins()

# === Database Configuration ===
MONGODB_URI = os.environ.get("MONGODB_URI")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "tripcollab")

# === JWT Configuration ===
JWT_SECRET = os.environ.get("JWT_SECRET", "your-secret-key-change-this-in-production")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = _get_int_env("JWT_EXPIRATION_HOURS", 24)

# === Itinerary API client ===
# Base URL the client side uses to reach this API (fetch itinerary, vote, notes)
API_BASE_URL = os.environ.get("API_BASE_URL", f"http://localhost:{SERVER_PORT}")
API_TIMEOUT_SECONDS = _get_float_env("API_TIMEOUT_SECONDS", 10.0)

# === Application Settings ===
APP_NAME = "Trip Collab API"
APP_VERSION = "1.0.0"
