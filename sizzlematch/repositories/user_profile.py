"""Repository helpers for the ``users`` profile collection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..context import AppContext
from ..db.collections import USERS_COLLECTION
from ..errors import NotFoundError, ReadError, WriteError
from ..models.instants import utc_now
from ..models.user_profile import UserProfile

LOGGER = logging.getLogger("uvicorn.error")

# Never writable through create/merge/upsert
_PROTECTED_FIELDS = ("_id", "uid", "createdAt", "updatedAt")


def _clean_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if key not in _PROTECTED_FIELDS}


def _split_updates(fields: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Separate ``$set`` values from fields given as ``None`` (``$unset``)."""

    set_ops: dict[str, Any] = {}
    unset_ops: dict[str, str] = {}
    for key, value in _clean_fields(fields).items():
        if value is None:
            unset_ops[key] = ""
        else:
            set_ops[key] = value
    return set_ops, unset_ops


class UserProfileRepository:
    """MongoDB access layer for profile documents keyed by uid."""

    def __init__(
        self,
        context: AppContext,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._context = context
        self._clock = clock or utc_now

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._context.database[USERS_COLLECTION]

    async def get(self, uid: str) -> Optional[UserProfile]:
        collection = self.collection
        try:
            doc = await collection.find_one({"_id": uid})
        except PyMongoError as exc:
            LOGGER.error("Reading profile uid=%s failed: %s", uid, exc)
            raise ReadError("failed to load profile") from exc
        if not doc:
            LOGGER.debug("No profile found for uid=%s", uid)
            return None
        try:
            return UserProfile.from_document(doc)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            LOGGER.error("Stored profile uid=%s is malformed: %s", uid, exc)
            raise ReadError("stored profile is malformed") from exc

    async def create(self, uid: str, fields: Mapping[str, Any]) -> None:
        """Insert a new profile document with both timestamps set."""

        collection = self.collection
        now = self._clock()
        set_ops, _ = _split_updates(fields)
        doc = {**set_ops, "_id": uid, "uid": uid, "createdAt": now, "updatedAt": now}
        try:
            await collection.insert_one(doc)
        except DuplicateKeyError as exc:
            LOGGER.debug("Duplicate profile insertion for uid=%s", uid)
            raise WriteError("profile already exists") from exc
        except PyMongoError as exc:
            LOGGER.error("Creating profile uid=%s failed: %s", uid, exc)
            raise WriteError("failed to create profile") from exc

    async def merge(self, uid: str, fields: Mapping[str, Any]) -> None:
        """Update only the given fields; ``None`` values remove the field."""

        collection = self.collection
        set_ops, unset_ops = _split_updates(fields)
        update: dict[str, Any] = {"$set": {**set_ops, "updatedAt": self._clock()}}
        if unset_ops:
            update["$unset"] = unset_ops
        try:
            result = await collection.update_one({"_id": uid}, update)
        except PyMongoError as exc:
            LOGGER.error("Merging profile uid=%s failed: %s", uid, exc)
            raise WriteError("failed to update profile") from exc
        if not result.matched_count:
            raise NotFoundError("user profile not found")

    async def upsert(self, uid: str, fields: Mapping[str, Any]) -> bool:
        """Create or merge in one round trip. Returns ``True`` when created."""

        collection = self.collection
        now = self._clock()
        set_ops, unset_ops = _split_updates(fields)
        update: dict[str, Any] = {
            "$set": {**set_ops, "updatedAt": now},
            "$setOnInsert": {"uid": uid, "createdAt": now},
        }
        if unset_ops:
            update["$unset"] = unset_ops
        try:
            result = await collection.update_one({"_id": uid}, update, upsert=True)
        except PyMongoError as exc:
            LOGGER.error("Saving profile uid=%s failed: %s", uid, exc)
            raise WriteError("failed to save profile") from exc
        return result.upserted_id is not None


__all__ = ["UserProfileRepository"]
