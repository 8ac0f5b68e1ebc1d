"""
Four-step import wizard: Upload, Preview, Validate, Confirm.
"""

from contact_import.wizard.controller import ImportWizard, RowSink, run_wizard
from contact_import.wizard.state import TransitionResult, WizardState, WizardStep

__all__ = [
    "ImportWizard",
    "RowSink",
    "TransitionResult",
    "WizardState",
    "WizardStep",
    "run_wizard",
]
