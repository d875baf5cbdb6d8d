"""
Field validation for the booking wizard.

Each function returns a field-keyed error map; an empty map means the
fields passed. Nested fields use dotted keys (``contact.email``). All
checks are synchronous and run before anything is sent to the backend.
"""

import re
from datetime import date
from typing import Optional

from booking_engine.schemas.booking_schema import OTHER_OPTION_ID, BookingDraft
from booking_engine.schemas.catalog_schema import ServiceOption
from booking_engine.tools.availability import BlockedDateSet
from booking_engine.utils import phone_digit_count, to_day

# Validation thresholds
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ErrorMap = dict[str, str]


def _validate_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value.strip()))


def _validate_phone(value: str, min_digits: int, max_digits: int) -> bool:
    return min_digits <= phone_digit_count(value) <= max_digits


def validate_postal(draft: BookingDraft, postal_valid: Optional[bool]) -> ErrorMap:
    """``postal_valid`` is the last recorded service-area check result."""
    if not draft.postal_code.strip():
        return {"postal_code": "Please enter a postal code"}
    if postal_valid is not True:
        return {"postal_code": "Please enter a valid postal code in our service area"}
    return {}


def validate_schedule(
    draft: BookingDraft, today: date, blocked: Optional[BlockedDateSet] = None
) -> ErrorMap:
    """Scheduled day must be set, not before ``today`` and not blocked."""
    if draft.scheduled_at is None:
        return {"scheduled_at": "Please select a date and time"}
    day = to_day(draft.scheduled_at)
    if day < today:
        return {"scheduled_at": "Please select a date that is not in the past"}
    if blocked is not None and day in blocked:
        return {"scheduled_at": "This date is unavailable. Please choose another date"}
    return {}


def validate_service_selection(
    draft: BookingDraft,
    postal_valid: Optional[bool],
    today: date,
    blocked: Optional[BlockedDateSet] = None,
) -> ErrorMap:
    """Fields required to leave the service selection step."""
    errors = validate_postal(draft, postal_valid)
    if not draft.service_type_id:
        errors["service_type_id"] = "Please select a service type"
    if not draft.frequency_id:
        errors["frequency_id"] = "Please select a frequency"
    errors.update(validate_schedule(draft, today, blocked))
    return errors


def validate_add_ons(draft: BookingDraft, options: list[ServiceOption]) -> ErrorMap:
    """Every selected add-on must belong to the draft's service type."""
    allowed = {o.id for o in options if o.service_type_id == draft.service_type_id}
    unknown = [
        e.option_id for e in draft.selected_extras
        if e.option_id != OTHER_OPTION_ID and e.option_id not in allowed
    ]
    if unknown:
        return {"selected_extras": f"Unavailable add-ons for this service: {', '.join(unknown)}"}
    return {}


def validate_billing(
    draft: BookingDraft,
    min_phone_digits: int = MIN_PHONE_DIGITS,
    max_phone_digits: int = MAX_PHONE_DIGITS,
) -> ErrorMap:
    """Contact and address fields collected on the billing step."""
    errors: ErrorMap = {}
    contact = draft.contact
    address = draft.address

    if not contact.first_name.strip():
        errors["contact.first_name"] = "First name is required"
    if not contact.last_name.strip():
        errors["contact.last_name"] = "Last name is required"

    if not contact.email.strip():
        errors["contact.email"] = "Email address is required"
    elif not _validate_email(contact.email):
        errors["contact.email"] = "Please enter a valid email address"

    if not contact.phone.strip():
        errors["contact.phone"] = "Mobile number is required"
    elif not _validate_phone(contact.phone, min_phone_digits, max_phone_digits):
        errors["contact.phone"] = (
            f"Please enter a valid mobile number ({min_phone_digits}-{max_phone_digits} digits)"
        )

    if not address.street.strip():
        errors["address.street"] = "Street address is required"
    if not address.city.strip():
        errors["address.city"] = "City is required"
    if not address.postal_code.strip():
        errors["address.postal_code"] = "Zip code is required"
    return errors


def validate_for_submission(
    draft: BookingDraft,
    postal_valid: Optional[bool],
    today: date,
    options: list[ServiceOption],
    blocked: Optional[BlockedDateSet] = None,
    min_phone_digits: int = MIN_PHONE_DIGITS,
    max_phone_digits: int = MAX_PHONE_DIGITS,
) -> ErrorMap:
    """Every rule at once. Submission is allowed only when this is empty."""
    errors = validate_service_selection(draft, postal_valid, today, blocked)
    errors.update(validate_add_ons(draft, options))
    errors.update(validate_billing(draft, min_phone_digits, max_phone_digits))
    return errors
