"""Outbound user notifications (toasts) emitted by profile operations."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

__all__ = ["LoggingNotificationSink", "NotificationSink", "Severity"]


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"
    DEFAULT = "default"


class NotificationSink(Protocol):
    def notify(self, message: str, severity: Severity = Severity.DEFAULT) -> None: ...


_LEVELS = {
    Severity.SUCCESS: logging.INFO,
    Severity.ERROR: logging.ERROR,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.DEFAULT: logging.INFO,
}


class LoggingNotificationSink:
    """Writes notifications to the log; used when no UI sink is attached."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("sizzlematch.notifications")

    def notify(self, message: str, severity: Severity = Severity.DEFAULT) -> None:
        severity = Severity(severity)
        self._logger.log(_LEVELS[severity], "[%s] %s", severity.value, message)
