"""Error kinds raised by the profile and picture stores."""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base exception raised when a profile or picture operation fails."""


class InitializationError(StoreError):
    """Raised when the backing stores are unavailable or misconfigured."""


class FetchError(StoreError):
    """Raised when an image reference cannot be read into memory."""


class ValidationError(StoreError):
    """Raised by caller-facing validators when a field, size or type check fails."""


class UploadError(StoreError):
    """Raised when writing to, or resolving a URL from, the object store fails."""


class DeleteError(StoreError):
    """Raised when an object cannot be deleted, including when it does not exist."""


class NotFoundError(StoreError):
    """Raised when an expected document or object is missing."""


class ReadError(StoreError):
    """Raised when the document store cannot be read."""


class WriteError(StoreError):
    """Raised when a document cannot be created or updated."""


__all__ = [
    "DeleteError",
    "FetchError",
    "InitializationError",
    "NotFoundError",
    "ReadError",
    "StoreError",
    "UploadError",
    "ValidationError",
    "WriteError",
]
