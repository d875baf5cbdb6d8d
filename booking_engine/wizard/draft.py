"""
In-memory booking draft with merge-style updates.

Each wizard step writes a partial update that is merged into the single
draft, so earlier steps survive navigation. Add-on selection follows a
few invariants:

- a selected add-on always has quantity >= 1; decrementing to 0 removes it
- removing an add-on that is not selected is a no-op
- add-ons must belong to the draft's service type, except the "other" entry
- changing the service type drops add-ons that no longer apply
"""

import logging
from typing import Any, Callable, Optional

from booking_engine.errors import ValidationError
from booking_engine.schemas.booking_schema import OTHER_OPTION_ID, BookingDraft, SelectedExtra
from booking_engine.schemas.catalog_schema import ServiceOption

logger = logging.getLogger(__name__)

DEFAULT_MAX_CUSTOM_TEXT_LENGTH = 500

OptionsProvider = Callable[[str], list[ServiceOption]]


class BookingDraftManager:
    """
    Owns one BookingDraft for one wizard session.

    ``options_for`` resolves the add-ons offered for a service type,
    normally ``CatalogCache.options_for``.
    """

    def __init__(
        self,
        options_for: OptionsProvider,
        max_custom_text_length: int = DEFAULT_MAX_CUSTOM_TEXT_LENGTH,
    ) -> None:
        self._options_for = options_for
        self._max_custom_text_length = max_custom_text_length
        self._draft = BookingDraft()
        self._other_text = ""
        self.postal_valid: Optional[bool] = None
        self.area_name: Optional[str] = None

    @property
    def draft(self) -> BookingDraft:
        return self._draft

    @property
    def selected_extras(self) -> list[SelectedExtra]:
        return list(self._draft.selected_extras)

    def reset(self) -> None:
        """Drop everything entered so far."""
        self._draft = BookingDraft()
        self._other_text = ""
        self.postal_valid = None
        self.area_name = None

    # ------------------------------------------------------------------ #
    # Field updates
    # ------------------------------------------------------------------ #

    def update(self, **changes: Any) -> BookingDraft:
        """
        Merge a partial update into the draft.

        ``contact`` and ``address`` may be partial dicts; they are merged
        into the existing nested values rather than replacing them.
        """
        current = self._draft.model_dump()
        for nested in ("contact", "address"):
            if nested in changes and isinstance(changes[nested], dict):
                changes[nested] = {**current[nested], **changes[nested]}

        old_postal = self._draft.postal_code
        old_service = self._draft.service_type_id
        self._draft = BookingDraft.model_validate({**current, **changes})

        if self._draft.postal_code.strip() != old_postal.strip():
            self.postal_valid = None
            self.area_name = None
        if self._draft.service_type_id != old_service:
            self._prune_extras()
        return self._draft

    def update_contact(self, **fields: str) -> BookingDraft:
        return self.update(contact=fields)

    def update_address(self, **fields: str) -> BookingDraft:
        return self.update(address=fields)

    def record_postal_result(self, is_valid: Optional[bool], area_name: Optional[str]) -> None:
        self.postal_valid = is_valid
        self.area_name = area_name

    def _prune_extras(self) -> None:
        allowed = self._allowed_option_ids()
        kept = [
            e for e in self._draft.selected_extras
            if e.option_id == OTHER_OPTION_ID or e.option_id in allowed
        ]
        dropped = len(self._draft.selected_extras) - len(kept)
        if dropped:
            logger.debug("Dropped %d add-on(s) not offered for %r", dropped, self._draft.service_type_id)
            self._draft.selected_extras = kept

    # ------------------------------------------------------------------ #
    # Add-ons
    # ------------------------------------------------------------------ #

    def _allowed_option_ids(self) -> set[str]:
        if not self._draft.service_type_id:
            return set()
        return {o.id for o in self._options_for(self._draft.service_type_id)}

    def _check_option(self, option_id: str) -> None:
        if option_id == OTHER_OPTION_ID:
            return
        if option_id not in self._allowed_option_ids():
            raise ValidationError(
                {"selected_extras": f"Add-on {option_id!r} is not available for this service"}
            )

    def _find(self, option_id: str) -> Optional[SelectedExtra]:
        return next((e for e in self._draft.selected_extras if e.option_id == option_id), None)

    def quantity_of(self, option_id: str) -> int:
        extra = self._find(option_id)
        return extra.quantity if extra else 0

    def is_selected(self, option_id: str) -> bool:
        return self._find(option_id) is not None

    def toggle_extra(self, option_id: str) -> None:
        """Select with quantity 1, or deselect if already selected."""
        if self.is_selected(option_id):
            self.remove_extra(option_id)
            return
        self._check_option(option_id)
        self._draft.selected_extras = [*self._draft.selected_extras, self._new_extra(option_id, 1)]

    def increment_extra(self, option_id: str) -> int:
        return self.change_quantity(option_id, 1)

    def decrement_extra(self, option_id: str) -> int:
        return self.change_quantity(option_id, -1)

    def change_quantity(self, option_id: str, delta: int) -> int:
        """Adjust quantity by ``delta``. Reaching 0 removes the add-on."""
        new_quantity = max(0, self.quantity_of(option_id) + delta)
        if new_quantity == 0:
            self.remove_extra(option_id)
            return 0

        if self.is_selected(option_id):
            self._draft.selected_extras = [
                e.model_copy(update={"quantity": new_quantity}) if e.option_id == option_id else e
                for e in self._draft.selected_extras
            ]
        else:
            self._check_option(option_id)
            self._draft.selected_extras = [
                *self._draft.selected_extras, self._new_extra(option_id, new_quantity)
            ]
        return new_quantity

    def remove_extra(self, option_id: str) -> None:
        """Remove an add-on. Removing an unselected add-on does nothing."""
        self._draft.selected_extras = [
            e for e in self._draft.selected_extras if e.option_id != option_id
        ]
        if option_id == OTHER_OPTION_ID:
            self._other_text = ""

    def set_other_text(self, text: str) -> str:
        """Describe a service that is not listed. Text beyond the cap is cut off."""
        if len(text) > self._max_custom_text_length:
            logger.debug("Custom text truncated from %d characters", len(text))
            text = text[: self._max_custom_text_length]
        self._other_text = text
        if self.is_selected(OTHER_OPTION_ID):
            self._draft.selected_extras = [
                e.model_copy(update={"custom_text": text}) if e.option_id == OTHER_OPTION_ID else e
                for e in self._draft.selected_extras
            ]
        return text

    def _new_extra(self, option_id: str, quantity: int) -> SelectedExtra:
        if option_id == OTHER_OPTION_ID:
            return SelectedExtra(option_id=option_id, quantity=quantity, custom_text=self._other_text)
        return SelectedExtra(option_id=option_id, quantity=quantity)
