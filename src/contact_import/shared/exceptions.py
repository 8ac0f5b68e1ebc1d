"""
Shared exceptions for the import pipeline.

Blocked wizard transitions are not exceptions; they are reported through
``TransitionResult``. These classes cover misuse and fatal input errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class ParseError(AppError):
    """Raw CSV input could not be read at all."""


class WizardStateError(AppError):
    """Operation is not available in the wizard's current step."""


class WizardBusyError(WizardStateError):
    """Operation attempted while a classification is running."""


class EntryNotFoundError(AppError):
    """Row or classified entry index out of range."""
