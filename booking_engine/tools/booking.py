"""
Booking lifecycle and cleaner assignment.

    pending -> assigned -> paid -> completed
    pending | assigned -> cancelled

``assigned -> assigned`` is a reassignment. ``completed`` and ``cancelled``
are terminal. Every action re-reads the booking from the backend and
checks the rule against that status before sending anything, so an
illegal move always surfaces as an InvalidTransitionError carrying the
reason.
"""

import logging
from typing import Optional

from booking_engine.api.client import BackendClient, ProofOfPayment
from booking_engine.errors import InvalidTransitionError, ValidationError
from booking_engine.logging_context import booking_session_id, session_scope
from booking_engine.schemas.booking_schema import BookingRecord, BookingStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ASSIGNED, BookingStatus.CANCELLED}),
    BookingStatus.ASSIGNED: frozenset({
        BookingStatus.ASSIGNED, BookingStatus.PAID, BookingStatus.CANCELLED,
    }),
    BookingStatus.PAID: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

_REASONS: dict[BookingStatus, str] = {
    BookingStatus.ASSIGNED: "only pending or assigned bookings can be assigned",
    BookingStatus.PAID: "only assigned bookings can be marked as paid",
    BookingStatus.COMPLETED: "only paid bookings can be completed",
    BookingStatus.CANCELLED: "only pending or assigned bookings can be cancelled",
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is permitted."""
    if can_transition(current, target):
        return
    if current in TERMINAL_STATUSES:
        reason = f"booking is {current.value}"
    else:
        reason = _REASONS.get(target, "transition not permitted")
    logger.debug("Rejected transition %s -> %s: %s", current.value, target.value, reason)
    raise InvalidTransitionError(current.value, target.value, reason)


class BookingLifecycleManager:
    """
    Applies lifecycle actions to persisted bookings.

    Keeps a local copy of the records it has seen. The copy is a cache,
    never authoritative: ``refresh()`` replaces it from the backend, and
    each action replaces the affected record with a fresh read before
    checking the transition.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._records: dict[str, BookingRecord] = {}

    @property
    def records(self) -> list[BookingRecord]:
        return list(self._records.values())

    def track(self, record: BookingRecord) -> None:
        self._records[record.booking_id] = record

    async def refresh(self) -> list[BookingRecord]:
        records = await self._client.list_bookings()
        self._records = {r.booking_id: r for r in records}
        return records

    async def get(self, booking_id: str) -> BookingRecord:
        """Cached record for display, fetched from the backend on a miss."""
        record = self._records.get(booking_id)
        if record is None:
            record = await self._fetch(booking_id)
        return record

    async def _fetch(self, booking_id: str) -> BookingRecord:
        record = await self._client.get_booking(booking_id)
        self.track(record)
        return record

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def assign(self, booking_id: str, cleaner_id: str) -> BookingRecord:
        """Assign or reassign a cleaner."""
        with session_scope(booking_session_id(booking_id)):
            record = await self._fetch(booking_id)
            check_transition(record.status, BookingStatus.ASSIGNED)
            if not cleaner_id or not cleaner_id.strip():
                raise ValidationError({"cleaner_id": "Please select a cleaner"})

            await self._client.assign_booking(booking_id, cleaner_id)
            previous = record.assigned_cleaner_id
            updated = record.model_copy(update={
                "status": BookingStatus.ASSIGNED,
                "assigned_cleaner_id": cleaner_id,
            })
            self.track(updated)
            if previous and previous != cleaner_id:
                logger.info("Booking %s reassigned from %s to %s", booking_id, previous, cleaner_id)
            else:
                logger.info("Booking %s assigned to %s", booking_id, cleaner_id)
            return updated

    async def mark_paid(
        self, booking_id: str, proof: Optional[ProofOfPayment]
    ) -> BookingRecord:
        """Move an assigned booking to paid. Requires a proof-of-payment file."""
        with session_scope(booking_session_id(booking_id)):
            record = await self._fetch(booking_id)
            check_transition(record.status, BookingStatus.PAID)
            if proof is None or not proof.content:
                raise ValidationError({"proof_of_payment": "Please select a proof of payment file"})

            response = await self._client.mark_paid(booking_id, proof)
            update: dict = {"status": BookingStatus.PAID}
            if isinstance(response, dict) and response.get("proofOfPaymentUrl"):
                update["proof_of_payment_url"] = response["proofOfPaymentUrl"]
            updated = record.model_copy(update=update)
            self.track(updated)
            logger.info("Booking %s marked as paid (%s)", booking_id, proof.filename)
            return updated

    async def confirm_completion(self, booking_id: str) -> BookingRecord:
        with session_scope(booking_session_id(booking_id)):
            record = await self._fetch(booking_id)
            check_transition(record.status, BookingStatus.COMPLETED)
            await self._client.complete_booking(booking_id)
            updated = record.model_copy(update={"status": BookingStatus.COMPLETED})
            self.track(updated)
            logger.info("Booking %s completed", booking_id)
            return updated

    async def cancel(self, booking_id: str) -> BookingRecord:
        with session_scope(booking_session_id(booking_id)):
            record = await self._fetch(booking_id)
            check_transition(record.status, BookingStatus.CANCELLED)
            await self._client.cancel_booking(booking_id)
            updated = record.model_copy(update={"status": BookingStatus.CANCELLED})
            self.track(updated)
            logger.info("Booking %s cancelled", booking_id)
            return updated
