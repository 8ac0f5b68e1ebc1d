"""
Rule registry and row validator.
"""

from contact_import.validation.rules import (
    CustomIssue,
    FieldType,
    RuleRegistry,
    ValidationRule,
)
from contact_import.validation.schemas import RowError
from contact_import.validation.validator import RowValidator, validate_row

__all__ = [
    "CustomIssue",
    "FieldType",
    "RowError",
    "RowValidator",
    "RuleRegistry",
    "ValidationRule",
    "validate_row",
]
