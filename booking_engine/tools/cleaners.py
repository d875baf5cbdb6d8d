"""
Cleaner occupancy, derived from bookings rather than stored.

A cleaner is occupied while they hold at least one active assignment
(assigned or paid). Completed and cancelled bookings do not count.
A stored ``inactive`` status overrides the derived value.
"""

from collections import Counter
from typing import Iterable

from booking_engine.schemas.booking_schema import (
    BookingRecord,
    BookingStatus,
    Cleaner,
    CleanerStatus,
)

ACTIVE_STATUSES = frozenset({BookingStatus.ASSIGNED, BookingStatus.PAID})

CLEANER_FILTERS = ("all", "occupied", "available")


def assignment_counts(bookings: Iterable[BookingRecord]) -> Counter:
    """Active assignments per cleaner id."""
    return Counter(
        b.assigned_cleaner_id
        for b in bookings
        if b.assigned_cleaner_id and b.status in ACTIVE_STATUSES
    )


def _status_from_counts(cleaner: Cleaner, counts: Counter) -> CleanerStatus:
    if cleaner.status == CleanerStatus.INACTIVE:
        return CleanerStatus.INACTIVE
    if counts[cleaner.id] > 0:
        return CleanerStatus.OCCUPIED
    return CleanerStatus.AVAILABLE


def derive_cleaner_status(cleaner: Cleaner, bookings: Iterable[BookingRecord]) -> CleanerStatus:
    return _status_from_counts(cleaner, assignment_counts(bookings))


def filter_cleaners(
    cleaners: Iterable[Cleaner],
    bookings: Iterable[BookingRecord],
    status: str = "all",
) -> list[Cleaner]:
    """Filter cleaners by derived status: "all", "occupied" or "available"."""
    if status not in CLEANER_FILTERS:
        raise ValueError(f"Unknown cleaner filter {status!r}, expected one of {CLEANER_FILTERS}")
    counts = assignment_counts(bookings)
    return [
        c for c in cleaners
        if status == "all" or _status_from_counts(c, counts).value == status
    ]
