"""
Finite state machine for the four-step booking wizard.

    SERVICE_SELECTION -> ADD_ONS -> BILLING -> CONFIRMATION

The path is strictly linear. Moving forward requires the current step's
fields to be complete; BookingWizard checks them before it moves the
machine. Going back is
allowed from ADD_ONS and BILLING; CONFIRMATION is terminal.

Usage:
    sm = WizardStateMachine()
    sm.transition(WizardTrigger.SERVICE_DETAILS_COMPLETE)
    assert sm.current_step == WizardStep.ADD_ONS
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from booking_engine.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    """Wizard steps in display order."""
    SERVICE_SELECTION = "service_selection"
    ADD_ONS = "add_ons"
    BILLING = "billing"
    CONFIRMATION = "confirmation"


class WizardTrigger(str, Enum):
    """Events that move the wizard between steps."""
    SERVICE_DETAILS_COMPLETE = "service_details_complete"
    ADD_ONS_CONFIRMED = "add_ons_confirmed"
    BOOKING_SUBMITTED = "booking_submitted"
    GO_BACK = "go_back"


@dataclass
class Transition:
    """A single valid step transition."""
    from_step: WizardStep
    to_step: WizardStep
    trigger: WizardTrigger


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""
    step: WizardStep
    entered_at: datetime
    trigger: Optional[WizardTrigger] = None


class WizardStateMachine:
    """Linear step machine. Every move must appear in TRANSITIONS."""

    TRANSITIONS: list[Transition] = [
        # --- Forward ---
        Transition(WizardStep.SERVICE_SELECTION, WizardStep.ADD_ONS,
                   WizardTrigger.SERVICE_DETAILS_COMPLETE),
        Transition(WizardStep.ADD_ONS, WizardStep.BILLING,
                   WizardTrigger.ADD_ONS_CONFIRMED),
        Transition(WizardStep.BILLING, WizardStep.CONFIRMATION,
                   WizardTrigger.BOOKING_SUBMITTED),

        # --- Back ---
        Transition(WizardStep.ADD_ONS, WizardStep.SERVICE_SELECTION,
                   WizardTrigger.GO_BACK),
        Transition(WizardStep.BILLING, WizardStep.ADD_ONS,
                   WizardTrigger.GO_BACK),
    ]

    def __init__(self) -> None:
        self._current_step = WizardStep.SERVICE_SELECTION
        self._history: list[StepEntry] = [
            StepEntry(step=WizardStep.SERVICE_SELECTION, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_step(self) -> WizardStep:
        return self._current_step

    def transition(self, trigger: WizardTrigger) -> WizardStep:
        """
        Move to the next step.

        Field checks happen before this is called; the machine only knows
        which moves exist.

        Raises:
            InvalidTransitionError: If no transition exists for the trigger.
        """
        for t in self.TRANSITIONS:
            if t.from_step != self._current_step or t.trigger != trigger:
                continue
            old_step = self._current_step
            self._current_step = t.to_step
            self._history.append(StepEntry(
                step=self._current_step,
                entered_at=datetime.now(timezone.utc),
                trigger=trigger,
            ))
            logger.debug(
                "Wizard step: %s -> %s (trigger: %s)",
                old_step.value, self._current_step.value, trigger.value,
            )
            return self._current_step

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            self._current_step.value, trigger.value,
            f"valid triggers: {valid}",
        )

    def get_valid_triggers(self) -> list[WizardTrigger]:
        """Return all triggers valid from the current step."""
        return [t.trigger for t in self.TRANSITIONS if t.from_step == self._current_step]

    def get_history(self) -> list[StepEntry]:
        return list(self._history)

    def get_step_trace(self) -> list[str]:
        """Return ordered list of step names visited."""
        return [entry.step.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_step == WizardStep.CONFIRMATION
