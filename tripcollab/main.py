import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripcollab.core.config import APP_NAME, APP_VERSION, CORS_ORIGINS, LOG_LEVEL, SERVER_HOST, SERVER_PORT
from tripcollab.db.database import close_database_connection, init_indexes, test_connection
from tripcollab.router.auth import router as auth_router
from tripcollab.router.itinerary import router as itinerary_router
from tripcollab.router.system import router as system_router
from tripcollab.router.trip import router as trip_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Test database connection
    logger.info(f"🚀 Starting up {APP_NAME}...")
    await test_connection()
    await init_indexes()
    yield
    # Shutdown: Close database connection
    logger.info(f"🛑 Shutting down {APP_NAME}...")
    await close_database_connection()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(trip_router)
app.include_router(itinerary_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
