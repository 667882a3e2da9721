import logging
import os
from typing import Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from ..config import Settings
from ..errors import InitializationError
from .collections import USERS_COLLECTION

LOGGER = logging.getLogger("uvicorn.error")


async def ensure_user_indexes(db: AsyncIOMotorDatabase) -> None:
    try:
        await db[USERS_COLLECTION].create_index("updatedAt")
        await db[USERS_COLLECTION].create_index(
            [("travelDates.arrival", 1), ("travelDates.departure", 1)],
            name="users_travel_dates_idx",
        )
    except PyMongoError as exc:  # pragma: no cover - best-effort logging
        LOGGER.error("Failed to ensure user indexes: %s", exc)


async def connect_to_mongo(
    settings: Settings,
) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """Connect and ping the primary URI, falling back to the alternate URI."""

    if not settings.mongo_uri and not settings.mongo_alt_uri:
        raise InitializationError("Missing MONGO_URI env var for the profile store")

    # Allow overriding timeouts via env; choose fast-fail defaults to avoid UI hangs
    sel_timeout_ms = int(os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "3000"))
    conn_timeout_ms = int(os.getenv("MONGO_CONNECT_TIMEOUT_MS", "3000"))
    sock_timeout_ms = int(os.getenv("MONGO_SOCKET_TIMEOUT_MS", "5000"))

    async def _try_connect(uri: str) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
        client = AsyncIOMotorClient(
            uri,
            tz_aware=True,
            maxPoolSize=20,
            serverSelectionTimeoutMS=sel_timeout_ms,
            connectTimeoutMS=conn_timeout_ms,
            socketTimeoutMS=sock_timeout_ms,
            **({"directConnection": True} if settings.mongo_direct else {}),
        )
        db = client[settings.mongo_db]
        try:
            await client.admin.command("ping")
        except PyMongoError:
            client.close()
            raise
        return client, db

    primary_error: Optional[Exception] = None
    for label, uri in (("primary", settings.mongo_uri), ("alt", settings.mongo_alt_uri)):
        if not uri:
            continue
        try:
            client, db = await _try_connect(uri)
        except (PyMongoError, ValueError) as exc:
            LOGGER.error("Mongo %s URI failed: %s", label, exc)
            primary_error = primary_error or exc
            continue
        LOGGER.info("MongoDB connected via %s URI: db=%s", label, settings.mongo_db)
        await ensure_user_indexes(db)
        return client, db

    raise InitializationError(f"MongoDB connection failed: {primary_error}") from primary_error


__all__ = ["connect_to_mongo", "ensure_user_indexes"]
