"""
Classification of row sets and auto-remediation.
"""

from contact_import.remediation.classifier import (
    ClassifiedEntry,
    ClassifiedRowSet,
    RowClassifier,
)

__all__ = ["ClassifiedEntry", "ClassifiedRowSet", "RowClassifier"]
