"""
Bulk contact CSV import: parse, preview, validate, remediate, commit.
"""

from contact_import.validation.rules import CustomIssue, FieldType, RuleRegistry, ValidationRule
from contact_import.wizard.controller import ImportWizard, run_wizard

__all__ = [
    "CustomIssue",
    "FieldType",
    "ImportWizard",
    "RuleRegistry",
    "ValidationRule",
    "run_wizard",
]
