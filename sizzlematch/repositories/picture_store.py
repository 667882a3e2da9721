"""Profile picture persistence in the object store."""

from __future__ import annotations

import logging
import mimetypes
import time
from typing import Callable, Optional

from ..context import AppContext
from ..errors import DeleteError, NotFoundError, UploadError
from ..utils.images import Payload

LOGGER = logging.getLogger("uvicorn.error")

PICTURE_ROOT = "profilePictures"


def picture_path(uid: str, epoch_ms: int) -> str:
    return f"{PICTURE_ROOT}/{uid}/{uid}_{epoch_ms}"


class ProfilePictureStore:
    """Uploads, resolves and deletes pictures under ``profilePictures/{uid}/``."""

    def __init__(
        self,
        context: AppContext,
        *,
        clock_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self._context = context
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

    async def upload(self, uid: str, payload: Payload) -> str:
        backend = self._context.storage
        # Every upload gets a fresh path; objects are never overwritten
        path = picture_path(uid, self._clock_ms())
        content_type = (
            payload.content_type
            or mimetypes.guess_type(payload.source)[0]
            or "application/octet-stream"
        )
        try:
            url = await backend.put(path, payload.data, content_type)
        except UploadError as exc:
            LOGGER.error("Uploading picture %s failed: %s", path, exc)
            raise
        LOGGER.info("Uploaded picture %s (%d bytes)", path, payload.byte_length)
        return url

    async def resolve_url(self, path: str) -> str:
        backend = self._context.storage
        try:
            return await backend.get_url(path)
        except (NotFoundError, UploadError) as exc:
            LOGGER.error("Resolving picture %s failed: %s", path, exc)
            raise

    async def delete(self, path: str) -> None:
        backend = self._context.storage
        try:
            await backend.delete(path)
        except DeleteError as exc:
            LOGGER.error("Deleting picture %s failed: %s", path, exc)
            raise
        LOGGER.info("Deleted picture %s", path)

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Storage path for an access URL, or ``None`` when it cannot be trusted."""

        if not url or not isinstance(url, str):
            return None
        try:
            backend = self._context.storage
            return backend.path_from_url(url.strip())
        except Exception as exc:  # any parse failure means "do not delete"
            LOGGER.warning("Could not extract storage path from %s: %s", url, exc)
            return None


__all__ = ["PICTURE_ROOT", "ProfilePictureStore", "picture_path"]
