"""
Administrative calendar availability.

Blocked dates are held at day granularity. The backend owns the set; the
manager keeps a read-through copy refreshed on every admin action.

Blocking is a full replace: ``block([d2])`` after ``block([d1, d2])``
leaves only ``d2`` blocked. Callers that want to keep earlier dates must
pass them again. Past dates are not rejected here; the date picker is
responsible for keeping them out of reach.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from booking_engine.api.client import BackendClient
from booking_engine.errors import MalformedResponseError, NetworkError, ServerRejectedError
from booking_engine.schemas.booking_schema import BookingRecord
from booking_engine.utils import DateLike, to_day

logger = logging.getLogger(__name__)


class BlockedDateSet:
    """Unordered set of blocked calendar days. Time-of-day is ignored."""

    def __init__(self, dates: Iterable[DateLike] = ()) -> None:
        self._days: set[date] = {to_day(d) for d in dates}

    def __contains__(self, value: DateLike) -> bool:
        return to_day(value) in self._days

    def __len__(self) -> int:
        return len(self._days)

    def __iter__(self):
        return iter(sorted(self._days))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockedDateSet):
            return NotImplemented
        return self._days == other._days

    def __repr__(self) -> str:
        return f"BlockedDateSet({[d.isoformat() for d in self]})"

    def without(self, value: DateLike) -> "BlockedDateSet":
        day = to_day(value)
        return BlockedDateSet(d for d in self._days if d != day)

    def as_list(self) -> list[date]:
        return list(self)


@dataclass(frozen=True)
class FreeDateResult:
    """Outcome of freeing a date. ``found`` is False for a benign no-op."""
    day: date
    found: bool

    @property
    def message(self) -> str:
        if self.found:
            return f"{self.day.isoformat()} is now available"
        return f"{self.day.isoformat()} was not blocked"


@dataclass(frozen=True)
class CalendarDay:
    """One calendar cell for the admin view."""
    day: date
    is_blocked: bool
    booking_count: int


def count_bookings_by_day(bookings: Iterable[BookingRecord]) -> Counter:
    """Count bookings per scheduled day. Unscheduled bookings are skipped."""
    return Counter(
        to_day(b.scheduled_at) for b in bookings if b.scheduled_at is not None
    )


class CalendarAvailabilityManager:
    """
    Block and free calendar days against the backend.

    ``refresh()`` degrades on failure: the last known set is kept and
    ``offline`` is raised. ``block()`` and ``free()`` are writes and
    propagate every failure.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._blocked = BlockedDateSet()
        self.offline = False

    @property
    def blocked_dates(self) -> BlockedDateSet:
        return self._blocked

    async def refresh(self) -> BlockedDateSet:
        try:
            dates = await self._client.get_blocked_dates()
        except (NetworkError, ServerRejectedError, MalformedResponseError) as e:
            logger.warning("Blocked dates unavailable, keeping last known set: %s", e)
            self.offline = True
            return self._blocked
        self._blocked = BlockedDateSet(dates)
        self.offline = False
        return self._blocked

    def is_blocked(self, value: DateLike) -> bool:
        return value in self._blocked

    async def block(self, dates: Iterable[DateLike]) -> BlockedDateSet:
        """Replace the whole blocked set with ``dates``."""
        replacement = BlockedDateSet(dates)
        await self._client.replace_blocked_dates(replacement.as_list())
        self._blocked = replacement
        logger.info("Blocked dates replaced: %d day(s)", len(replacement))
        return replacement

    async def free(self, value: DateLike) -> FreeDateResult:
        """Unblock one day. Freeing a day that is not blocked is a no-op."""
        day = to_day(value)
        await self.refresh()
        if day not in self._blocked:
            logger.debug("Free requested for %s, which is not blocked", day)
            return FreeDateResult(day=day, found=False)
        await self._client.free_blocked_date(day)
        self._blocked = self._blocked.without(day)
        logger.info("Freed blocked date %s", day)
        return FreeDateResult(day=day, found=True)

    def annotate(
        self,
        days: Iterable[DateLike],
        bookings: Iterable[BookingRecord],
        blocked: Optional[BlockedDateSet] = None,
    ) -> list[CalendarDay]:
        """Mark each day with its block status and booking count.

        The two are independent: a day can hold bookings without being
        blocked, and a blocked day can still show earlier bookings.
        """
        blocked = self._blocked if blocked is None else blocked
        counts = count_bookings_by_day(bookings)
        result = []
        for value in days:
            day = to_day(value)
            result.append(CalendarDay(day=day, is_blocked=day in blocked, booking_count=counts[day]))
        return result

    def bookings_on(
        self, value: DateLike, bookings: Iterable[BookingRecord]
    ) -> list[BookingRecord]:
        day = to_day(value)
        return [
            b for b in bookings
            if b.scheduled_at is not None and to_day(b.scheduled_at) == day
        ]
