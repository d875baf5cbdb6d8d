"""
One customer's pass through the booking wizard.

Ties the step machine, the draft, the catalog and the blocked-date
calendar together. Validation always runs locally and completely before
the backend is contacted; a submission either passes every rule or sends
nothing.
"""

import logging
import uuid
from datetime import date
from typing import Awaitable, Callable, Optional

from booking_engine.api.client import BackendClient
from booking_engine.config import BookingRulesConfig, PricingConfig
from booking_engine.errors import InvalidTransitionError, ValidationError
from booking_engine.logging_context import session_scope
from booking_engine.schemas.booking_schema import BookingDraft, BookingRecord
from booking_engine.tools.availability import CalendarAvailabilityManager
from booking_engine.tools.catalog import CatalogCache
from booking_engine.tools.pricing import PriceQuote, build_quote
from booking_engine.tools.service_areas import (
    DebouncedPostalValidator,
    PostalCodeResult,
    ServiceAreaChecker,
)
from booking_engine.utils import round_money
from booking_engine.wizard.draft import BookingDraftManager
from booking_engine.wizard.state_machine import WizardStateMachine, WizardStep, WizardTrigger
from booking_engine.wizard.validation import (
    validate_add_ons,
    validate_for_submission,
    validate_service_selection,
)

logger = logging.getLogger(__name__)

_FORWARD_TRIGGERS: dict[WizardStep, WizardTrigger] = {
    WizardStep.SERVICE_SELECTION: WizardTrigger.SERVICE_DETAILS_COMPLETE,
    WizardStep.ADD_ONS: WizardTrigger.ADD_ONS_CONFIRMED,
}


class BookingWizard:
    """
    Drives a single booking from service selection to confirmation.

    Nothing is persisted until ``submit()``. Abandoning the wizard with
    ``discard()`` throws the draft away.
    """

    def __init__(
        self,
        client: BackendClient,
        catalog: CatalogCache,
        availability: CalendarAvailabilityManager,
        pricing: Optional[PricingConfig] = None,
        rules: Optional[BookingRulesConfig] = None,
        clock: Callable[[], date] = date.today,
        session_id: Optional[str] = None,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self._availability = availability
        self._pricing = pricing or PricingConfig()
        self._rules = rules or BookingRulesConfig()
        self._clock = clock
        self._checker = ServiceAreaChecker(catalog)
        self._steps = WizardStateMachine()
        self._drafts = BookingDraftManager(catalog.options_for, self._rules.max_custom_text_length)
        self._postal_validator: Optional[DebouncedPostalValidator] = None
        self.session_id = session_id or f"WIZ-{uuid.uuid4().hex[:8]}"
        self.submitted: Optional[BookingRecord] = None

    @property
    def step(self) -> WizardStep:
        return self._steps.current_step

    @property
    def steps(self) -> WizardStateMachine:
        return self._steps

    @property
    def drafts(self) -> BookingDraftManager:
        return self._drafts

    @property
    def draft(self) -> BookingDraft:
        return self._drafts.draft

    async def load(self) -> None:
        """Fetch the catalog (if needed) and the blocked dates."""
        with session_scope(self.session_id):
            if not self._catalog.is_loaded:
                await self._catalog.load()
            await self._availability.refresh()
            if self._catalog.using_fallback:
                logger.warning("Wizard is running on the fallback catalog")

    # ------------------------------------------------------------------ #
    # Service area
    # ------------------------------------------------------------------ #

    async def check_postal_code(self, postal_code: str) -> PostalCodeResult:
        """Store the postal code on the draft and check it against the service areas."""
        self._drafts.update(postal_code=postal_code)
        with session_scope(self.session_id):
            result = await self._checker.check(postal_code)
        self._record_postal_result(postal_code, result)
        return result

    def postal_validator(
        self,
        drop_stale: bool = False,
        check: Optional[Callable[[str], Awaitable[PostalCodeResult]]] = None,
    ) -> DebouncedPostalValidator:
        """Install the debounced checker used by ``enter_postal_code``."""
        self._postal_validator = DebouncedPostalValidator(
            check or self._checker.check,
            delay_sec=self._rules.postal_debounce_ms / 1000,
            drop_stale=drop_stale,
            on_result=self._record_postal_result,
        )
        return self._postal_validator

    def enter_postal_code(self, postal_code: str) -> DebouncedPostalValidator:
        """
        Keystroke-level entry: store the input as typed and queue a debounced check.

        Results only update the validity flags. The typed code is never
        rewritten, even when a slow check for an earlier code lands last.
        """
        validator = self._postal_validator or self.postal_validator()
        self._drafts.update(postal_code=postal_code)
        with session_scope(self.session_id):
            validator.submit(postal_code)
        return validator

    def _record_postal_result(self, postal_code: str, result: PostalCodeResult) -> None:
        self._drafts.record_postal_result(result.is_valid, result.area_name)

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def current_errors(self) -> dict[str, str]:
        """Errors blocking the current step, without raising."""
        if self.step == WizardStep.SERVICE_SELECTION:
            return validate_service_selection(
                self.draft, self._drafts.postal_valid, self._clock(),
                self._availability.blocked_dates,
            )
        if self.step == WizardStep.ADD_ONS:
            return validate_add_ons(self.draft, self._catalog.options)
        if self.step == WizardStep.BILLING:
            return self._submission_errors()
        return {}

    def next_step(self) -> WizardStep:
        """Advance one step once the current step's fields are complete."""
        trigger = _FORWARD_TRIGGERS.get(self.step)
        if trigger is None:
            if self.step == WizardStep.BILLING:
                reason = "submit the booking to continue"
            else:
                reason = "the booking is already confirmed"
            raise InvalidTransitionError(self.step.value, "next", reason)
        errors = self.current_errors()
        if errors:
            with session_scope(self.session_id):
                logger.debug("Step %s incomplete: %s", self.step.value, sorted(errors))
            raise ValidationError(errors)
        return self._steps.transition(trigger)

    def back(self) -> WizardStep:
        return self._steps.transition(WizardTrigger.GO_BACK)

    # ------------------------------------------------------------------ #
    # Pricing and submission
    # ------------------------------------------------------------------ #

    def quote(self) -> PriceQuote:
        return build_quote(
            self.draft,
            self._catalog.service_types,
            self._catalog.frequencies,
            self._catalog.options,
            tax_rate=self._pricing.tax_rate,
            currency=self._pricing.currency,
        )

    def _submission_errors(self) -> dict[str, str]:
        return validate_for_submission(
            self.draft,
            self._drafts.postal_valid,
            self._clock(),
            self._catalog.options,
            blocked=self._availability.blocked_dates,
            min_phone_digits=self._rules.min_phone_digits,
            max_phone_digits=self._rules.max_phone_digits,
        )

    async def submit(self) -> BookingRecord:
        """
        Validate everything, attach the price snapshot and create the booking.

        Raises:
            InvalidTransitionError: If the wizard is not on the billing step.
            ValidationError: If any field fails; nothing is sent.
            NetworkError / ServerRejectedError: If the backend call fails.
                The draft is kept so the customer can retry.
        """
        if self.step != WizardStep.BILLING:
            raise InvalidTransitionError(
                self.step.value, WizardStep.CONFIRMATION.value,
                "bookings can only be submitted from the billing step",
            )
        with session_scope(self.session_id):
            errors = self._submission_errors()
            if errors:
                logger.debug("Submission rejected: %s", sorted(errors))
                raise ValidationError(errors)

            total_price = round_money(self.quote().grand_total)
            record = await self._client.create_booking(self.draft, total_price)
            self._steps.transition(WizardTrigger.BOOKING_SUBMITTED)
            self.submitted = record
            self._drafts.reset()
            logger.info("Booking %s submitted, total %.2f", record.booking_id, record.total_price)
            return record

    def discard(self) -> None:
        """Abandon the wizard. The draft is not saved anywhere."""
        self._drafts.reset()
        self._steps = WizardStateMachine()
        with session_scope(self.session_id):
            logger.info("Booking draft discarded")
