"""Thin wrapper over the external identity provider.

Sessions and tokens belong to the provider; this module only turns its error
codes into user-facing messages and reports them through the notification sink.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from pydantic import BaseModel

from ..utils.notifications import LoggingNotificationSink, NotificationSink, Severity

LOGGER = logging.getLogger("uvicorn.error")

DEFAULT_AUTH_ERROR_MESSAGE = "An error occurred ({code}). Please try again."

AUTH_ERROR_MESSAGES: dict[str, str] = {
    "auth/email-already-in-use": "This email is already registered.",
    "auth/invalid-email": "Please enter a valid email address.",
    "auth/weak-password": "Password should be at least 6 characters.",
    "auth/user-not-found": "Invalid email or password.",
    "auth/wrong-password": "Invalid email or password.",
    "auth/too-many-requests": "Too many failed attempts. Please try again later.",
    "auth/network-request-failed": "Network error. Please check your connection.",
    "auth/api-key-not-valid.-please-pass-a-valid-api-key.": (
        "Firebase configuration error. Please contact support."
    ),
}


def auth_error_message(code: Optional[str]) -> str:
    code = code or "unknown"
    return AUTH_ERROR_MESSAGES.get(code, DEFAULT_AUTH_ERROR_MESSAGE.format(code=code))


class IdentityProviderError(Exception):
    """Failure reported by the identity provider, carrying its error code."""

    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code


class IdentityUser(BaseModel):
    uid: str
    email: Optional[str] = None


class IdentityProvider(Protocol):
    async def create_user(self, email: str, password: str) -> IdentityUser: ...

    async def sign_in(self, email: str, password: str) -> IdentityUser: ...

    async def sign_out(self) -> None: ...


class AuthService:
    def __init__(
        self,
        provider: IdentityProvider,
        notifier: Optional[NotificationSink] = None,
    ) -> None:
        self._provider = provider
        self._notifier = notifier or LoggingNotificationSink()

    def _fail(self, exc: IdentityProviderError) -> None:
        LOGGER.error("Identity provider error: %s (%s)", exc.code, exc)
        self._notifier.notify(auth_error_message(exc.code), Severity.ERROR)

    async def register(self, email: str, password: str) -> IdentityUser:
        try:
            return await self._provider.create_user(email.strip(), password)
        except IdentityProviderError as exc:
            self._fail(exc)
            raise

    async def login(self, email: str, password: str) -> IdentityUser:
        try:
            return await self._provider.sign_in(email.strip(), password)
        except IdentityProviderError as exc:
            self._fail(exc)
            raise

    async def logout(self) -> None:
        try:
            await self._provider.sign_out()
        except IdentityProviderError as exc:
            LOGGER.error("Sign-out failed: %s", exc.code)
            self._notifier.notify("Failed to log out. Please try again.", Severity.ERROR)
            raise


__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthService",
    "IdentityProvider",
    "IdentityProviderError",
    "IdentityUser",
    "auth_error_message",
]
