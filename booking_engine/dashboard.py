"""
Admin dashboard figures over persisted bookings.

Revenue is the sum of the ``total_price`` snapshots stored at submission.
It is never recomputed from the current catalog.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from booking_engine.schemas.booking_schema import BookingRecord, BookingStatus
from booking_engine.utils import format_currency, round_money, to_day

logger = logging.getLogger(__name__)

NEW_BOOKING_WINDOW_DAYS = 7

REVENUE_STATUSES = frozenset({BookingStatus.PAID, BookingStatus.COMPLETED})

SORT_FIELDS = ("scheduled_at", "created_at", "total_price", "status", "customer_name")


def payment_status(record: BookingRecord) -> str:
    """``completed``, ``paid`` (paid or proof attached) or ``pending``."""
    if record.status == BookingStatus.COMPLETED:
        return "completed"
    if record.status == BookingStatus.PAID or record.proof_of_payment_url:
        return "paid"
    return "pending"


def filter_bookings(
    records: Iterable[BookingRecord],
    search: str = "",
    status: Optional[BookingStatus] = None,
) -> list[BookingRecord]:
    """Case-insensitive search over name and address, plus an optional status filter."""
    term = search.strip().lower()
    result = []
    for record in records:
        if status is not None and record.status != status:
            continue
        if term:
            haystack = " ".join((
                record.customer_name,
                record.address.street,
                record.address.city,
                record.address.postal_code,
            )).lower()
            if term not in haystack:
                continue
        result.append(record)
    return result


def _sort_key(field_name: str):
    if field_name == "scheduled_at":
        return lambda r: (r.scheduled_at is None, r.scheduled_at.timestamp() if r.scheduled_at else 0.0)
    if field_name == "created_at":
        return lambda r: r.created_at.timestamp()
    if field_name == "total_price":
        return lambda r: r.total_price
    if field_name == "status":
        return lambda r: r.status.value
    if field_name == "customer_name":
        return lambda r: r.customer_name.lower()
    raise ValueError(f"Cannot sort bookings by {field_name!r}, expected one of {SORT_FIELDS}")


def sort_bookings(
    records: Iterable[BookingRecord],
    field_name: str = "scheduled_at",
    descending: bool = False,
) -> list[BookingRecord]:
    return sorted(records, key=_sort_key(field_name), reverse=descending)


@dataclass
class DashboardMetrics:
    """Headline figures for the admin dashboard."""

    total_bookings: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    revenue: float = 0.0
    new_bookings: int = 0
    upcoming_bookings: int = 0
    unassigned_bookings: int = 0


class DashboardCalculator:
    """Calculates dashboard metrics from booking records."""

    def calculate(self, records: Iterable[BookingRecord], today: date) -> DashboardMetrics:
        records = list(records)
        metrics = DashboardMetrics(total_bookings=len(records))
        metrics.status_counts = {s.value: 0 for s in BookingStatus}
        window_start = today - timedelta(days=NEW_BOOKING_WINDOW_DAYS)

        for record in records:
            metrics.status_counts[record.status.value] += 1

            if record.status in REVENUE_STATUSES:
                metrics.revenue += record.total_price

            if to_day(record.created_at) > window_start:
                metrics.new_bookings += 1

            active = record.status not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)
            if active and record.scheduled_at is not None and to_day(record.scheduled_at) >= today:
                metrics.upcoming_bookings += 1

            if record.status == BookingStatus.PENDING:
                metrics.unassigned_bookings += 1

        metrics.revenue = round_money(metrics.revenue)
        logger.debug("Dashboard metrics over %d bookings", metrics.total_bookings)
        return metrics

    def format_report(self, metrics: DashboardMetrics, currency: str = "USD") -> str:
        """Format metrics into a plain-text summary."""
        lines = [
            "=" * 40,
            "BOOKINGS DASHBOARD",
            "=" * 40,
            f"  Total bookings:   {metrics.total_bookings}",
            f"  New (7 days):     {metrics.new_bookings}",
            f"  Upcoming:         {metrics.upcoming_bookings}",
            f"  Unassigned:       {metrics.unassigned_bookings}",
            f"  Revenue:          {format_currency(metrics.revenue, currency)}",
            "",
            "BY STATUS",
        ]
        lines += [f"  {name:<17} {count}" for name, count in metrics.status_counts.items()]
        lines.append("=" * 40)
        return "\n".join(lines)


def to_rows(records: Iterable[BookingRecord]) -> list[dict[str, Any]]:
    """Flatten records for tabular display."""
    return [
        {
            "booking_id": r.booking_id,
            "customer": r.customer_name,
            "scheduled_at": r.scheduled_at.isoformat() if isinstance(r.scheduled_at, datetime) else "",
            "status": r.status.value,
            "payment": payment_status(r),
            "total": format_currency(r.total_price),
        }
        for r in records
    ]
