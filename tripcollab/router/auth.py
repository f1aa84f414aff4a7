import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tripcollab.core.config import JWT_ALGORITHM, JWT_EXPIRATION_HOURS, JWT_SECRET
from tripcollab.models.user import UserInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    email: str | None = None,
    name: str | None = None,
    picture: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Issue a signed JWT for a user. The session provider is external; this is
    what it hands to clients and what tests use to act as a user.
    """
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "picture": picture,
        "exp": datetime.utcnow() + (expires_in or timedelta(hours=JWT_EXPIRATION_HOURS)),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> UserInfo:
    """
    Validate a JWT and return the actor it names.
    Raises HTTPException(401) on bad signature, expiry or missing subject.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid authentication token: {str(e)}")

    # Check if token is expired
    exp = payload.get("exp")
    if exp and datetime.utcnow().timestamp() > exp:
        raise HTTPException(status_code=401, detail="Token has expired")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Token has no subject")

    return UserInfo(
        id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UserInfo:
    """Dependency: the authenticated user, or 401."""
    return decode_access_token(credentials.credentials)


async def get_optional_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
) -> UserInfo | None:
    """Dependency: the authenticated user, or None for anonymous reads of public trips."""
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


@router.get("/me", response_model=UserInfo)
async def get_me(actor: UserInfo = Depends(get_current_actor)):
    """
    Get current authenticated user from JWT token

    Frontend should call this on app load to check if user is authenticated.
    """
    return actor


@router.post("/logout")
async def logout(actor: UserInfo = Depends(get_current_actor)):
    """
    With JWT tokens, logout is handled on the client side by dropping the
    token. This endpoint only records the event.
    """
    logger.info(f"[logout] user={actor.id}")
    return {"message": "Logged out successfully"}
