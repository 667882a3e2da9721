"""Helpers for turning image references into byte payloads and checking them."""

from __future__ import annotations

import base64
import binascii
import mimetypes
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict

from ..errors import FetchError

__all__ = [
    "DEFAULT_ALLOWED_TYPES",
    "Payload",
    "get_file_extension",
    "to_blob",
    "validate_size",
    "validate_type",
]

DEFAULT_ALLOWED_TYPES = ("jpg", "jpeg", "png", "gif")


class Payload(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    content_type: Optional[str] = None
    source: str = ""

    @property
    def byte_length(self) -> int:
        return len(self.data)


def _is_remote(ref: str) -> bool:
    lowered = ref.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def _decode_data_url(ref: str) -> Payload:
    header, sep, body = ref.partition(",")
    if not sep:
        raise FetchError("Failed to process image: malformed data URL")
    meta = header[len("data:"):]
    is_b64 = meta.endswith(";base64")
    mime = (meta[: -len(";base64")] if is_b64 else meta).split(";")[0].strip() or None
    try:
        data = base64.b64decode(body, validate=True) if is_b64 else unquote_to_bytes(body)
    except (binascii.Error, ValueError) as exc:
        raise FetchError(f"Failed to process image: {exc}") from exc
    return Payload(data=data, content_type=mime, source="data-url")


def _local_path(ref: str) -> Path:
    if ref.lower().startswith("file://"):
        return Path(unquote(urlparse(ref).path))
    return Path(ref)


async def _fetch_remote(ref: str, client: httpx.AsyncClient) -> Payload:
    try:
        response = await client.get(ref, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise FetchError(f"Failed to process image: {exc}") from exc
    mime = response.headers.get("content-type", "").split(";")[0].strip() or None
    return Payload(data=response.content, content_type=mime, source=ref)


async def to_blob(image_ref: str, client: Optional[httpx.AsyncClient] = None) -> Payload:
    """Read a local file, data URL or remote URL into memory."""

    if not image_ref or not isinstance(image_ref, str):
        raise FetchError("Failed to process image: empty image reference")
    ref = image_ref.strip()

    if ref.lower().startswith("data:"):
        return _decode_data_url(ref)

    if _is_remote(ref):
        if client is not None:
            return await _fetch_remote(ref, client)
        async with httpx.AsyncClient() as owned:
            return await _fetch_remote(ref, owned)

    path = _local_path(ref)
    try:
        data = await run_in_threadpool(path.read_bytes)
    except OSError as exc:
        raise FetchError(f"Failed to process image: {exc}") from exc
    mime, _ = mimetypes.guess_type(path.name)
    return Payload(data=data, content_type=mime, source=str(path))


def validate_size(payload: Payload, max_size_mb: float = 5) -> bool:
    return payload.byte_length <= max_size_mb * 1024 * 1024


def get_file_extension(ref: str) -> str:
    """Lowercase extension of the last path segment, e.g. ``jpg``.

    For URLs the query string and fragment are ignored; for data URLs the
    MIME subtype stands in for the extension.
    """

    text = (ref or "").strip()
    if text.lower().startswith("data:"):
        mime = text[len("data:"):].split(",", 1)[0].split(";", 1)[0]
        return mime.rsplit("/", 1)[-1].lower()
    if "://" in text:
        text = unquote(urlparse(text).path)
    file_name = text.split("/")[-1]
    return file_name.split(".")[-1].lower()


def validate_type(ref: str, allowed: Iterable[str] = DEFAULT_ALLOWED_TYPES) -> bool:
    return get_file_extension(ref) in {ext.lower() for ext in allowed}
