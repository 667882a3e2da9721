"""Instant type shared by profile models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic.functional_validators import BeforeValidator

_UNSUPPORTED = "Instant value must be a datetime, ISO string or epoch milliseconds"


def to_instant(value: datetime) -> datetime:
    """Normalize a datetime to UTC with millisecond precision (BSON date precision)."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def _validate_instant(value: Any) -> datetime:
    if isinstance(value, datetime):
        return to_instant(value)
    if isinstance(value, bool):
        raise ValueError(_UNSUPPORTED)
    if isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError("Epoch milliseconds out of range") from exc
        return to_instant(moment)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Instant string must not be empty")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_instant(datetime.fromisoformat(text))
        except (OverflowError, ValueError) as exc:
            raise ValueError("Invalid ISO-8601 instant") from exc
    raise ValueError(_UNSUPPORTED)


Instant = Annotated[datetime, BeforeValidator(_validate_instant)]


def utc_now() -> datetime:
    return to_instant(datetime.now(timezone.utc))


__all__ = ["Instant", "to_instant", "utc_now"]
