"""Store handles and the outcome of initializing them.

The context is built once at startup. A failed initialization does not raise;
it is recorded, and every store-facing operation re-raises it through
:meth:`AppContext.require_ready` before touching a store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import BaseModel, ConfigDict

from .config import Settings, get_settings
from .db import connect_to_mongo
from .errors import InitializationError
from .integrations.storage import StorageBackend, build_storage_backend

LOGGER = logging.getLogger("uvicorn.error")


class InitializationResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: Optional[InitializationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AppContext:
    def __init__(
        self,
        settings: Settings,
        *,
        database: Optional[AsyncIOMotorDatabase] = None,
        storage: Optional[StorageBackend] = None,
        error: Optional[InitializationError] = None,
        mongo_client: Optional[AsyncIOMotorClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if error is None and (database is None or storage is None):
            error = InitializationError("Profile stores are not initialized")
        self.settings = settings
        self.result = InitializationResult(error=error)
        self._database = database
        self._storage = storage
        self._mongo_client = mongo_client
        self.http_client = http_client

    @classmethod
    def failed(cls, settings: Settings, error: InitializationError, **kwargs: Any) -> "AppContext":
        return cls(settings, error=error, **kwargs)

    def require_ready(self) -> None:
        if self.result.error is not None:
            raise self.result.error

    @property
    def database(self) -> AsyncIOMotorDatabase:
        self.require_ready()
        if self._database is None:
            raise RuntimeError("MongoDB database not connected. Did you call build_context()?")
        return self._database

    @property
    def storage(self) -> StorageBackend:
        self.require_ready()
        if self._storage is None:
            raise RuntimeError("Picture storage not configured. Did you call build_context()?")
        return self._storage

    def status(self) -> Dict[str, Any]:
        return {
            "ready": self.result.ok,
            "error": str(self.result.error) if self.result.error else None,
            "db": self.settings.mongo_db,
            "storageBackend": self.settings.storage_backend,
        }

    async def close(self) -> None:
        self._database = None
        self._storage = None
        if self._mongo_client is not None:
            self._mongo_client.close()
            self._mongo_client = None
            LOGGER.info("MongoDB connection closed")
        if self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None


async def build_context(
    settings: Optional[Settings] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    """Connect to both stores; never raises, the failure is kept on the context."""

    settings = settings or get_settings()
    http_client = http_client or httpx.AsyncClient()
    try:
        storage = build_storage_backend(settings, http_client)
        mongo_client, database = await connect_to_mongo(settings)
    except InitializationError as exc:
        LOGGER.error("Profile store initialization failed: %s", exc)
        return AppContext.failed(settings, exc, http_client=http_client)
    return AppContext(
        settings,
        database=database,
        storage=storage,
        mongo_client=mongo_client,
        http_client=http_client,
    )


__all__ = ["AppContext", "InitializationResult", "build_context"]
