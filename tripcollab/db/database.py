"""
MongoDB connection for the trip/itinerary collections.

One motor client per process, created on first use and closed from the app
lifespan. Routers only go through the get_*_collection() accessors so tests
can swap them out.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.server_api import ServerApi

from tripcollab.core.config import DATABASE_NAME, MONGODB_URI

logger = logging.getLogger(__name__)

TRIPS = "trips"
TRIP_MEMBERS = "trip_members"
ITINERARY_ITEMS = "itinerary_items"
ITEM_COMMENTS = "item_comments"

# collection -> [(keys, options)]
INDEXES = {
    TRIPS: [("created_by", {})],
    TRIP_MEMBERS: [
        ([("trip_id", 1), ("user_id", 1)], {"unique": True, "name": "uniq_trip_user"}),
        ("user_id", {}),
    ],
    # display order inside a trip is (day_number, position)
    ITINERARY_ITEMS: [
        ([("trip_id", 1), ("day_number", 1), ("position", 1)], {"name": "trip_day_position"}),
    ],
    ITEM_COMMENTS: [([("item_id", 1), ("created_at", 1)], {"name": "item_created"})],
}

_client = None
_database = None


def get_database():
    """Return the shared database handle, connecting lazily."""
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        _client = AsyncIOMotorClient(MONGODB_URI, server_api=ServerApi("1"))
        _database = _client[DATABASE_NAME]
        logger.info(f"✅ Using MongoDB database: {DATABASE_NAME}")

    return _database


async def init_indexes():
    """Create the indexes in INDEXES. Failures are logged, not raised."""
    db = get_database()
    for collection_name, specs in INDEXES.items():
        for keys, options in specs:
            try:
                await db[collection_name].create_index(keys, **options)
            except Exception as e:
                logger.warning(f"⚠️  [init_indexes] {collection_name} {keys}: {e}")
    logger.info("✅ Database indexes ensured")


async def close_database_connection():
    global _client, _database

    if _client is not None:
        _client.close()
        logger.info("🔌 MongoDB client closed")
    _client = None
    _database = None


async def test_connection() -> bool:
    """Ping the server once; used at startup so a bad URI shows up in the logs early."""
    try:
        await get_database().command("ping")
    except Exception as e:
        logger.error(f"❌ [test_connection] MongoDB ping failed: {e}")
        return False
    logger.info("✅ MongoDB ping ok")
    return True


def get_trips_collection():
    return get_database()[TRIPS]


def get_trip_members_collection():
    """Membership rows: one (trip_id, user_id, role) per member."""
    return get_database()[TRIP_MEMBERS]


def get_itinerary_items_collection():
    """Items with their stored voters map; see tripcollab.itinerary.voting."""
    return get_database()[ITINERARY_ITEMS]


def get_item_comments_collection():
    return get_database()[ITEM_COMMENTS]
