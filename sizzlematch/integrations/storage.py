"""Object store backend selection."""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from ..config import Settings
from ..errors import InitializationError


class StorageBackend(Protocol):
    """Path-addressed blob store that publishes per-object access URLs."""

    async def put(self, path: str, data: bytes, content_type: str) -> str: ...

    async def get_url(self, path: str) -> str: ...

    async def delete(self, path: str) -> None: ...

    def path_from_url(self, url: str) -> Optional[str]: ...


def build_storage_backend(settings: Settings, http_client: httpx.AsyncClient) -> StorageBackend:
    backend = settings.storage_backend
    if backend == "firebase":
        from .firebase_storage import FirebaseStorageBackend

        if not settings.firebase_storage_bucket:
            raise InitializationError("Missing FIREBASE_STORAGE_BUCKET for the picture store")
        return FirebaseStorageBackend(
            http_client,
            bucket=settings.firebase_storage_bucket,
            base_url=settings.firebase_storage_base_url,
            auth_token=settings.firebase_storage_token,
        )
    if backend == "cloudinary":
        from .cloudinary import CloudinaryStorageBackend

        return CloudinaryStorageBackend()
    raise InitializationError(f"Unknown STORAGE_BACKEND {backend!r}")


__all__ = ["StorageBackend", "build_storage_backend"]
