"""
MongoDB connection management using Motor (async driver).

A single DatabaseClient instance is shared across all requests via a
module-level singleton. The get_db dependency gives routes access without
importing the singleton directly.

The connection is opened in FastAPI's lifespan (startup) and closed on
shutdown.
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from campus_incidents.core.config import settings

logger = logging.getLogger(__name__)

INCIDENTS_COLLECTION = "incidents"


class DatabaseClient:
    """Holds the Motor client and selected database (patchable in tests)."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None


# Module-level singleton — all app code references this object
db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    """
    Create the MongoDB connection and validate it with a ping.

    Called once at app startup (via lifespan). If MongoDB is unavailable the
    API still starts; DB-dependent endpoints answer 503 and the health check
    reports "disconnected".
    """
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    try:
        db_client.client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            tlsCAFile=certifi.where(),
        )
        db_client.db = db_client.client[settings.mongo_db_name]
        await db_client.client.admin.command("ping")
        logger.info("MongoDB connection established (db: %s)", settings.mongo_db_name)
    except Exception as exc:
        logger.warning(
            "MongoDB unavailable at startup: %s. "
            "API running in degraded mode — DB endpoints will fail.",
            exc,
        )
        db_client.client = None
        db_client.db = None
        return

    await ensure_indexes(db_client.db)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes backing the duplicate window and map queries."""
    try:
        incidents = db[INCIDENTS_COLLECTION]
        await incidents.create_index([("category", 1), ("status", 1), ("created_at", -1)])
        await incidents.create_index([("reported_by", 1), ("created_at", -1)])
    except Exception as exc:
        logger.warning("Index creation failed: %s", exc)


async def close_mongo_connection() -> None:
    """Close the MongoDB connection gracefully on app shutdown."""
    if db_client.client is not None:
        db_client.client.close()
        logger.info("MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase | None:
    """
    FastAPI dependency — inject the database into route handlers.

    Returns None when MongoDB is unavailable.

    Usage in a route:
        async def my_route(db = Depends(get_db)):
            if db is None:
                raise HTTPException(status_code=503, detail="Database unavailable")
    """
    return db_client.db


def _redact_uri(uri: str) -> str:
    """Strip credentials from URI before logging."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
