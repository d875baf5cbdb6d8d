"""Shared utilities used across the booking engine."""

import re
from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime]


def to_day(value: DateLike) -> date:
    """Collapse a date or datetime to its calendar day, ignoring time-of-day.

    Examples:
        >>> to_day(datetime(2025, 6, 10, 14, 30))
        datetime.date(2025, 6, 10)
        >>> to_day(date(2025, 6, 10))
        datetime.date(2025, 6, 10)
    """
    if isinstance(value, datetime):
        return value.date()
    return value


def phone_digit_count(value: str) -> int:
    """Count the digits in a phone number after stripping everything else.

    Examples:
        >>> phone_digit_count("+1 (555) 010-9999")
        11
    """
    return len(re.sub(r"[^\d]", "", value))


def round_money(amount: float) -> float:
    """Round a monetary amount to 2 decimals for display."""
    return round(amount, 2)


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format an amount for display, e.g. ``$154.00`` or ``-$3.50``."""
    symbol = "$" if currency.upper() == "USD" else f"{currency.upper()} "
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
