"""Booking draft, booking record and cleaner data models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OTHER_OPTION_ID = "other"

_STATUS_ALIASES = {"confirmed": "assigned"}


class BookingStatus(str, Enum):
    """Lifecycle status of a persisted booking."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Any) -> "BookingStatus":
        """Parse a backend status string, case-insensitively.

        The legacy backend value ``confirmed`` means ``assigned``.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        return cls(_STATUS_ALIASES.get(normalized, normalized))


class CleanerStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    INACTIVE = "inactive"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectedExtra(WireModel):
    """An add-on picked in the wizard. Quantity is always >= 1 while selected."""
    option_id: str
    quantity: int = Field(default=1, ge=1)
    custom_text: Optional[str] = None


class ContactDetails(WireModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class AddressDetails(WireModel):
    street: str = ""
    city: str = ""
    postal_code: str = ""


class BookingDraft(WireModel):
    """
    Client-held booking in progress through the wizard.

    Owned by a single wizard session and never persisted until submission.
    Every field starts empty so partial updates can be merged step by step.
    """
    postal_code: str = ""
    service_type_id: str = ""
    frequency_id: str = ""
    scheduled_at: Optional[datetime] = None
    selected_extras: list[SelectedExtra] = Field(default_factory=list)
    contact: ContactDetails = Field(default_factory=ContactDetails)
    address: AddressDetails = Field(default_factory=AddressDetails)
    special_instructions: str = ""


class BookingRecord(BookingDraft):
    """Backend-persisted booking with a lifecycle status.

    ``total_price`` is the snapshot taken at submission time and is never
    recomputed from the live catalog. Records are immutable; lifecycle
    changes produce updated copies.
    """

    model_config = ConfigDict(frozen=True)

    booking_id: str
    status: BookingStatus = BookingStatus.PENDING
    total_price: float
    assigned_cleaner_id: Optional[str] = None
    proof_of_payment_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> BookingStatus:
        return BookingStatus.parse(value)

    @property
    def customer_name(self) -> str:
        return f"{self.contact.first_name} {self.contact.last_name}".strip()


class Cleaner(WireModel):
    """Cleaning staff member. ``status`` is informational; see tools.cleaners."""
    id: str
    first_name: str
    last_name: str
    email: str = ""
    status: CleanerStatus = CleanerStatus.AVAILABLE

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value
