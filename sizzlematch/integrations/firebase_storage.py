"""Firebase Storage access over its REST API."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import httpx

from ..errors import DeleteError, NotFoundError, UploadError

LOGGER = logging.getLogger("uvicorn.error")

# Access URLs look like {base}/v0/b/{bucket}/o/{percent-encoded path}?alt=media&token=...
_OBJECT_MARKER = "/o/"


class FirebaseStorageBackend:
    """Upload, resolve and delete objects in one Firebase Storage bucket."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        bucket: str,
        base_url: str = "https://firebasestorage.googleapis.com",
        auth_token: Optional[str] = None,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token or None

    @property
    def bucket(self) -> str:
        return self._bucket

    def _bucket_url(self) -> str:
        return f"{self._base_url}/v0/b/{self._bucket}/o"

    def _object_url(self, path: str) -> str:
        return f"{self._bucket_url()}/{quote(path, safe='')}"

    def _headers(self) -> dict[str, str]:
        if not self._auth_token:
            return {}
        return {"Authorization": f"Bearer {self._auth_token}"}

    def _download_url(self, path: str, metadata: dict) -> str:
        url = f"{self._object_url(path)}?alt=media"
        tokens = str(metadata.get("downloadTokens") or "").strip()
        if tokens:
            url += f"&token={tokens.split(',')[0]}"
        return url

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        try:
            response = await self._client.post(
                self._bucket_url(),
                params={"name": path, "uploadType": "media"},
                content=data,
                headers={**self._headers(), "Content-Type": content_type},
            )
            response.raise_for_status()
            metadata = response.json()
        except httpx.HTTPError as exc:
            raise UploadError(f"upload of {path} failed: {exc}") from exc
        except ValueError as exc:
            raise UploadError(f"upload of {path} returned invalid metadata") from exc
        return self._download_url(str(metadata.get("name") or path), metadata)

    async def get_url(self, path: str) -> str:
        try:
            response = await self._client.get(self._object_url(path), headers=self._headers())
        except httpx.HTTPError as exc:
            raise UploadError(f"lookup of {path} failed: {exc}") from exc
        if response.status_code == 404:
            raise NotFoundError(f"object {path} not found")
        try:
            response.raise_for_status()
            metadata = response.json()
        except httpx.HTTPError as exc:
            raise UploadError(f"lookup of {path} failed: {exc}") from exc
        except ValueError as exc:
            raise UploadError(f"lookup of {path} returned invalid metadata") from exc
        return self._download_url(path, metadata)

    async def delete(self, path: str) -> None:
        try:
            response = await self._client.delete(self._object_url(path), headers=self._headers())
        except httpx.HTTPError as exc:
            raise DeleteError(f"delete of {path} failed: {exc}") from exc
        if response.status_code == 404:
            raise DeleteError(f"object {path} does not exist")
        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeleteError(f"delete of {path} failed: {exc}") from exc

    def path_from_url(self, url: str) -> Optional[str]:
        parsed = urlparse(url)
        expected = urlparse(self._base_url)
        if parsed.scheme not in ("http", "https") or parsed.netloc != expected.netloc:
            return None
        head, marker, encoded = parsed.path.partition(_OBJECT_MARKER)
        if not marker or not encoded:
            return None
        if head.rstrip("/").split("/")[-1] != self._bucket:
            return None
        # urlparse already split off the query; guard against a literal '?' anyway
        path = unquote(encoded.split("?")[0])
        return path or None


__all__ = ["FirebaseStorageBackend"]
