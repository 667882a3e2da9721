from __future__ import annotations

from ..models.user_profile import DateRange, UserProfile


def ranges_overlap(a: DateRange, b: DateRange) -> bool:
    """True when the two stays share time.

    Ranges are half-open: a departure on the same instant as the other
    traveler's arrival is not an overlap.
    """

    return a.arrival < b.departure and b.arrival < a.departure


def profiles_overlap(a: UserProfile, b: UserProfile, *, require_picture: bool = True) -> bool:
    """Overlap between two fetched profiles; incomplete profiles never match."""

    if not a.is_complete(require_picture) or not b.is_complete(require_picture):
        return False
    range_a = a.travel_range()
    range_b = b.travel_range()
    if range_a is None or range_b is None:
        return False
    return ranges_overlap(range_a, range_b)


__all__ = ["profiles_overlap", "ranges_overlap"]
