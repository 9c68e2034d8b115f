"""
MongoDB client initialization and access utilities.

This module configures and manages the asynchronous MongoDB client used by
the collaboration engine. It connects to the database using Motor (the async
MongoDB driver for Python) and exposes a global client and database instance
for use in other modules.

Connection settings come from `collab_engine.core.config`
(`MONGODB_URI`, `MONGODB_DB`).

Usage example:
    >>> from collab_engine.db.client import init_mongo, get_db
    >>> await init_mongo()
    >>> db = get_db()
    >>> print(await db.list_collection_names())
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from collab_engine.core.config import MONGO_DB_NAME, MONGO_URI

logger = logging.getLogger(__name__)

# Global MongoDB client and database references
client: AsyncIOMotorClient = None
_db: AsyncIOMotorDatabase = None

# ------------------------------------------------------------------------------
# Initialization
# ------------------------------------------------------------------------------

async def init_mongo():
    """
    Initialize the global MongoDB client and database connection.

    Datetimes are returned timezone-aware (UTC) so they compare with the
    timestamps produced by the engine. It should be called once during
    application startup (see `collab_engine.main`).
    """
    global client, _db
    client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
    _db = client[MONGO_DB_NAME]
    logger.info("Connected to MongoDB at %s, using database '%s'", MONGO_URI, MONGO_DB_NAME)


def close_mongo():
    """Close the global client, if any."""
    global client, _db
    if client is not None:
        client.close()
    client = None
    _db = None

# ------------------------------------------------------------------------------
# Database Access
# ------------------------------------------------------------------------------

def get_db() -> AsyncIOMotorDatabase:
    """
    Retrieve the initialized MongoDB database instance.

    Raises:
        RuntimeError: If the database has not been initialized yet
        (i.e., `init_mongo()` has not been called).
    """

    if _db is None:
        raise RuntimeError("MongoDB was not initialized. Call init_mongo() first.")
    return _db
