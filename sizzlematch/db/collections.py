"""MongoDB collection names used by the profile service."""

from __future__ import annotations

USERS_COLLECTION = "users"

__all__ = ["USERS_COLLECTION"]
