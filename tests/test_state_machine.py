"""Tests for the booking wizard step machine."""

import pytest

from booking_engine.errors import InvalidTransitionError
from booking_engine.wizard.state_machine import (
    WizardStateMachine,
    WizardStep,
    WizardTrigger,
)


@pytest.fixture
def state_machine():
    return WizardStateMachine()


def _advance_to_billing(sm: WizardStateMachine) -> None:
    sm.transition(WizardTrigger.SERVICE_DETAILS_COMPLETE)
    sm.transition(WizardTrigger.ADD_ONS_CONFIRMED)


class TestInitialState:
    def test_starts_in_service_selection(self, state_machine):
        assert state_machine.current_step == WizardStep.SERVICE_SELECTION

    def test_initial_history_has_one_entry(self, state_machine):
        assert len(state_machine.get_history()) == 1

    def test_not_terminal_at_start(self, state_machine):
        assert not state_machine.is_terminal()


class TestForwardPath:
    def test_linear_path(self, state_machine):
        _advance_to_billing(state_machine)
        state_machine.transition(WizardTrigger.BOOKING_SUBMITTED)
        assert state_machine.get_step_trace() == [
            "service_selection", "add_ons", "billing", "confirmation",
        ]
        assert state_machine.is_terminal()

    def test_cannot_skip_add_ons(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(WizardTrigger.ADD_ONS_CONFIRMED)
        assert state_machine.current_step == WizardStep.SERVICE_SELECTION

    def test_cannot_submit_from_service_selection(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(WizardTrigger.BOOKING_SUBMITTED)


class TestGoBack:
    def test_back_from_billing(self, state_machine):
        _advance_to_billing(state_machine)
        assert state_machine.transition(WizardTrigger.GO_BACK) == WizardStep.ADD_ONS
        assert state_machine.transition(WizardTrigger.GO_BACK) == WizardStep.SERVICE_SELECTION

    def test_no_back_from_first_step(self, state_machine):
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(WizardTrigger.GO_BACK)

    def test_confirmation_is_terminal(self, state_machine):
        _advance_to_billing(state_machine)
        state_machine.transition(WizardTrigger.BOOKING_SUBMITTED)
        assert state_machine.get_valid_triggers() == []
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(WizardTrigger.GO_BACK)


class TestValidTriggers:
    def test_triggers_from_billing(self, state_machine):
        _advance_to_billing(state_machine)
        assert set(state_machine.get_valid_triggers()) == {
            WizardTrigger.BOOKING_SUBMITTED, WizardTrigger.GO_BACK,
        }

    def test_error_lists_valid_triggers(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="service_details_complete"):
            state_machine.transition(WizardTrigger.BOOKING_SUBMITTED)
