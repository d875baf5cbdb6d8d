"""
Deterministic booking price calculation.

    subtotal    = base price - frequency discount + extras total
    tax         = subtotal * tax rate
    grand total = subtotal + tax

The frequency discount applies to the base price only, never to add-ons.
The "other" add-on always contributes 0 regardless of its free text, and
so does an add-on that belongs to a different service type.

All amounts are plain floats, rounded to 2 decimals only for display, so
repeated calculations over large quantities can accumulate rounding error.
No clamp is applied: a catalog discount above 100% yields a negative
subtotal, which is logged as a warning and passed through unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from booking_engine.schemas.booking_schema import OTHER_OPTION_ID, BookingDraft, SelectedExtra
from booking_engine.schemas.catalog_schema import ServiceFrequency, ServiceOption, ServiceType
from booking_engine.utils import format_currency, round_money

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = 0.10


def _find_service_type(
    service_type_id: str, service_types: list[ServiceType]
) -> Optional[ServiceType]:
    return next((st for st in service_types if st.id == service_type_id), None)


def _find_frequency(
    frequency_id: str, frequencies: list[ServiceFrequency]
) -> Optional[ServiceFrequency]:
    return next((f for f in frequencies if f.id == frequency_id), None)


def get_base_price(draft: BookingDraft, service_types: list[ServiceType]) -> float:
    """Base price of the selected service type, 0 when unresolved."""
    service_type = _find_service_type(draft.service_type_id, service_types)
    return service_type.base_price if service_type else 0.0


def get_frequency_discount(
    draft: BookingDraft,
    service_types: list[ServiceType],
    frequencies: list[ServiceFrequency],
) -> float:
    """Discount off the base price for the selected frequency, 0 when unresolved."""
    frequency = _find_frequency(draft.frequency_id, frequencies)
    if frequency is None or not frequency.discount_percentage:
        return 0.0
    return get_base_price(draft, service_types) * (frequency.discount_percentage / 100)


def get_extras_total(
    selected_extras: list[SelectedExtra],
    options: list[ServiceOption],
    service_type_id: Optional[str] = None,
) -> float:
    """
    Sum of price-per-unit times quantity over the selected add-ons.

    With ``service_type_id`` only that service type's add-ons are priced;
    an add-on offered for another service contributes 0.
    """
    prices = {
        o.id: o.price_per_unit for o in options
        if service_type_id is None or o.service_type_id == service_type_id
    }
    total = 0.0
    for extra in selected_extras:
        if extra.option_id == OTHER_OPTION_ID:
            continue
        total += prices.get(extra.option_id, 0.0) * extra.quantity
    return total


def calculate_subtotal(
    draft: BookingDraft,
    service_types: list[ServiceType],
    frequencies: list[ServiceFrequency],
    options: list[ServiceOption],
) -> float:
    base = get_base_price(draft, service_types)
    discount = get_frequency_discount(draft, service_types, frequencies)
    extras = get_extras_total(draft.selected_extras, options, draft.service_type_id)
    subtotal = base - discount + extras
    if subtotal < 0:
        logger.warning(
            "Negative subtotal %.2f for service %r / frequency %r; discount exceeds base price",
            subtotal, draft.service_type_id, draft.frequency_id,
        )
    return subtotal


def calculate_tax(subtotal: float, tax_rate: float = DEFAULT_TAX_RATE) -> float:
    return subtotal * tax_rate


def calculate_grand_total(
    draft: BookingDraft,
    service_types: list[ServiceType],
    frequencies: list[ServiceFrequency],
    options: list[ServiceOption],
    tax_rate: float = DEFAULT_TAX_RATE,
) -> float:
    subtotal = calculate_subtotal(draft, service_types, frequencies, options)
    return subtotal + calculate_tax(subtotal, tax_rate)


@dataclass(frozen=True)
class PriceQuote:
    """Itemized price for a draft. Values are unrounded floats."""

    base_price: float
    frequency_discount: float
    extras_total: float
    subtotal: float
    tax_rate: float
    tax: float
    grand_total: float
    currency: str = "USD"

    def rounded(self) -> dict[str, float]:
        """Display values rounded to 2 decimals."""
        return {
            "base_price": round_money(self.base_price),
            "frequency_discount": round_money(self.frequency_discount),
            "extras_total": round_money(self.extras_total),
            "subtotal": round_money(self.subtotal),
            "tax": round_money(self.tax),
            "grand_total": round_money(self.grand_total),
        }

    def summary_lines(self) -> list[str]:
        """Human-readable breakdown for summaries and the CLI."""
        pct = f"{self.tax_rate * 100:g}%"
        return [
            f"Base price:         {format_currency(self.base_price, self.currency)}",
            f"Frequency discount: -{format_currency(self.frequency_discount, self.currency)}",
            f"Add-ons:            {format_currency(self.extras_total, self.currency)}",
            f"Subtotal:           {format_currency(self.subtotal, self.currency)}",
            f"Tax ({pct}):{' ' * max(1, 14 - len(pct))}{format_currency(self.tax, self.currency)}",
            f"Total:              {format_currency(self.grand_total, self.currency)}",
        ]


def build_quote(
    draft: BookingDraft,
    service_types: list[ServiceType],
    frequencies: list[ServiceFrequency],
    options: list[ServiceOption],
    tax_rate: float = DEFAULT_TAX_RATE,
    currency: str = "USD",
) -> PriceQuote:
    """Compute every price component for a draft in one pass."""
    base = get_base_price(draft, service_types)
    discount = get_frequency_discount(draft, service_types, frequencies)
    extras = get_extras_total(draft.selected_extras, options, draft.service_type_id)
    subtotal = calculate_subtotal(draft, service_types, frequencies, options)
    tax = calculate_tax(subtotal, tax_rate)
    return PriceQuote(
        base_price=base,
        frequency_discount=discount,
        extras_total=extras,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax=tax,
        grand_total=subtotal + tax,
        currency=currency,
    )
