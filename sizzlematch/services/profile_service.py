"""Profile save / picture replacement across the document and object stores.

The two stores share no transaction. Writes follow a saga:

* the picture is uploaded before the document references it, so a document
  never points at a missing object;
* if the document write then fails, the fresh upload is deleted as the
  compensating action; if that delete fails too the object stays orphaned.

Orphans are invisible to users, broken picture references are not. Nothing is
retried: uploads carry no idempotency key, so a retry could only add orphans.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

import httpx
from fastapi import Request

from ..context import AppContext
from ..errors import (
    DeleteError,
    FetchError,
    InitializationError,
    NotFoundError,
    ReadError,
    StoreError,
    UploadError,
    ValidationError,
    WriteError,
)
from ..models.user_profile import ProfileFields, UserProfile, coerce_profile_fields
from ..repositories.picture_store import ProfilePictureStore
from ..repositories.user_profile import UserProfileRepository
from ..utils.images import Payload, to_blob, validate_size, validate_type
from ..utils.notifications import LoggingNotificationSink, NotificationSink, Severity
from .matching import profiles_overlap

LOGGER = logging.getLogger("uvicorn.error")

FAILURE_MESSAGES: dict[type, str] = {
    InitializationError: "Backend initialization error. Please try again later.",
    FetchError: "Failed to process image. Please choose another picture.",
    UploadError: "Failed to upload image. Please try again later.",
    DeleteError: "Failed to delete image. Please try again later.",
    NotFoundError: "Profile not found.",
    ReadError: "Failed to load profile. Please try again.",
    WriteError: "Failed to save profile. Please try again.",
    StoreError: "Something went wrong. Please try again.",
}


def failure_message(exc: StoreError) -> str:
    """User-facing message for a failed operation."""

    if isinstance(exc, ValidationError):
        return str(exc)
    for kind in type(exc).__mro__:
        if kind in FAILURE_MESSAGES:
            return FAILURE_MESSAGES[kind]
    return FAILURE_MESSAGES[StoreError]


class ProfileService:
    """Orchestrates profile documents and their pictures.

    Each public operation reports exactly one notification: its final outcome.
    """

    def __init__(
        self,
        context: AppContext,
        profiles: UserProfileRepository,
        pictures: ProfilePictureStore,
        notifier: Optional[NotificationSink] = None,
        *,
        fetch_client: Optional[httpx.AsyncClient] = None,
        max_picture_mb: Optional[float] = None,
        require_picture: Optional[bool] = None,
    ) -> None:
        settings = context.settings
        self._context = context
        self._profiles = profiles
        self._pictures = pictures
        self._notifier = notifier or LoggingNotificationSink()
        self._fetch_client = fetch_client
        self._max_picture_mb = (
            settings.max_profile_picture_mb if max_picture_mb is None else max_picture_mb
        )
        self._require_picture = (
            settings.require_profile_picture if require_picture is None else require_picture
        )

    @property
    def require_picture(self) -> bool:
        return self._require_picture

    def _fail(self, exc: StoreError) -> None:
        self._notifier.notify(failure_message(exc), Severity.ERROR)

    async def _load_picture(self, image_ref: str) -> Payload:
        if not validate_type(image_ref):
            raise ValidationError("Please select a JPG, PNG or GIF image.")
        payload = await to_blob(image_ref, self._fetch_client)
        if not validate_size(payload, self._max_picture_mb):
            raise ValidationError(f"Image is too large. Max {self._max_picture_mb:g} MB.")
        return payload

    async def _compensate(self, url: str) -> None:
        path = self._pictures.path_from_url(url)
        if path is None:
            LOGGER.warning("Cannot resolve %s for cleanup; leaving orphaned picture", url)
            return
        try:
            await self._pictures.delete(path)
        except DeleteError as exc:
            LOGGER.warning("Compensating delete of %s failed, picture orphaned: %s", path, exc)

    async def _discard_old_picture(self, old_url: Optional[str]) -> None:
        if not old_url:
            return
        path = self._pictures.path_from_url(old_url)
        if path is None:
            LOGGER.info("Skipping cleanup of unrecognised picture URL %s", old_url)
            return
        try:
            await self._pictures.delete(path)
        except DeleteError as exc:
            LOGGER.warning("Superseded picture %s not deleted, leaving orphan: %s", path, exc)

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            self._context.require_ready()
            return await self._profiles.get(uid)
        except StoreError as exc:
            self._fail(exc)
            raise

    async def save_profile(
        self,
        uid: str,
        fields: Union[ProfileFields, Mapping[str, Any], None],
        image_ref: Optional[str] = None,
    ) -> bool:
        """Save profile fields, uploading ``image_ref`` first when given.

        Returns ``True`` when the profile document was created.
        """

        uploaded_url: Optional[str] = None
        try:
            self._context.require_ready()
            document = coerce_profile_fields(fields).to_document()
            if image_ref:
                payload = await self._load_picture(image_ref)
                uploaded_url = await self._pictures.upload(uid, payload)
                document["profilePicture"] = uploaded_url
            try:
                created = await self._profiles.upsert(uid, document)
            except StoreError:
                if uploaded_url:
                    await self._compensate(uploaded_url)
                raise
        except StoreError as exc:
            self._fail(exc)
            raise

        message = "Profile created successfully" if created else "Profile updated successfully"
        self._notifier.notify(message, Severity.SUCCESS)
        return created

    async def saved_profile(self, uid: str) -> Optional[UserProfile]:
        # Read-back after save_profile, which has already reported its outcome
        return await self._profiles.get(uid)

    async def replace_picture(self, uid: str, image_ref: str) -> str:
        """Upload a new picture, drop the superseded one and point the profile at it."""

        try:
            self._context.require_ready()
            profile = await self._profiles.get(uid)
            if profile is None:
                raise NotFoundError("user profile not found")
            payload = await self._load_picture(image_ref)
            new_url = await self._pictures.upload(uid, payload)
            # Old picture goes before the document write; if that write fails the
            # profile is left pointing at a deleted object. Accepted window.
            await self._discard_old_picture(profile.profile_picture)
            try:
                await self._profiles.merge(uid, {"profilePicture": new_url})
            except StoreError:
                await self._compensate(new_url)
                raise
        except StoreError as exc:
            self._fail(exc)
            raise

        self._notifier.notify("Profile picture updated successfully", Severity.SUCCESS)
        return new_url

    async def remove_picture(self, uid: str) -> None:
        """Unset the profile's picture, then delete the object."""

        try:
            self._context.require_ready()
            profile = await self._profiles.get(uid)
            if profile is None:
                raise NotFoundError("user profile not found")
            url = profile.profile_picture
            if not url:
                self._notifier.notify("No profile picture to remove", Severity.INFO)
                return
            await self._profiles.merge(uid, {"profilePicture": None})
            path = self._pictures.path_from_url(url)
            if path is None:
                LOGGER.warning("Picture URL %s not recognised; object left in place", url)
            else:
                await self._pictures.delete(path)
        except StoreError as exc:
            self._fail(exc)
            raise

        self._notifier.notify("Image deleted successfully", Severity.SUCCESS)

    async def is_profile_complete(self, uid: str) -> bool:
        # Gating check: fails closed and stays silent.
        try:
            self._context.require_ready()
            profile = await self._profiles.get(uid)
        except StoreError as exc:
            LOGGER.warning("Profile completeness check for uid=%s failed: %s", uid, exc)
            return False
        if profile is None:
            return False
        return profile.is_complete(self._require_picture)

    async def travelers_overlap(self, uid: str, other_uid: str) -> bool:
        try:
            self._context.require_ready()
            first = await self._profiles.get(uid)
            second = await self._profiles.get(other_uid)
        except StoreError as exc:
            self._fail(exc)
            raise
        if first is None or second is None:
            return False
        return profiles_overlap(first, second, require_picture=self._require_picture)


def build_profile_service(
    context: AppContext,
    notifier: Optional[NotificationSink] = None,
) -> ProfileService:
    return ProfileService(
        context,
        UserProfileRepository(context),
        ProfilePictureStore(context),
        notifier,
        fetch_client=context.http_client,
    )


def get_profile_service(request: Request) -> ProfileService:
    return build_profile_service(request.app.state.context)


__all__ = [
    "FAILURE_MESSAGES",
    "ProfileService",
    "build_profile_service",
    "failure_message",
    "get_profile_service",
]
