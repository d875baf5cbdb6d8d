from booking_engine.wizard.draft import BookingDraftManager
from booking_engine.wizard.session import BookingWizard
from booking_engine.wizard.state_machine import (
    WizardStateMachine,
    WizardStep,
    WizardTrigger,
)

__all__ = [
    "BookingWizard",
    "BookingDraftManager",
    "WizardStateMachine",
    "WizardStep",
    "WizardTrigger",
]
