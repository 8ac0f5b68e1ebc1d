"""
Declarative validation rules for imported rows.

Rules are caller-supplied configuration: the pipeline does not know what a
field means, only how to check it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Mapping, Union


class FieldType(str, Enum):
    """Semantic type checked by a rule."""

    TEXT = "text"
    PHONE = "phone"
    EMAIL = "email"
    NUMBER = "number"
    DATE = "date"


@dataclass(frozen=True)
class CustomIssue:
    """Explicit result of a custom check.

    Returning this instead of a plain message lets the check decide
    fixability and the replacement value itself.
    """

    message: str
    fixable: bool = False
    suggestion: str | None = None


CustomResult = Union[str, CustomIssue, None]
CustomCheck = Callable[[str, Mapping[str, str]], CustomResult]


@dataclass(frozen=True)
class ValidationRule:
    """One check applied to one field of every row."""

    field: str
    required: bool = False
    type: FieldType = FieldType.TEXT
    pattern: re.Pattern[str] | str | None = None
    custom: CustomCheck | None = None
    min_value: float | None = None
    max_value: float | None = None

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("ValidationRule.field must not be empty")
        if not isinstance(self.type, FieldType):
            object.__setattr__(self, "type", FieldType(self.type))
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))


class RuleRegistry:
    """Ordered, read-only collection of rules.

    A field may have several rules; they are evaluated in registration
    order.
    """

    def __init__(self, rules: Iterable[ValidationRule] = ()) -> None:
        self._rules: tuple[ValidationRule, ...] = tuple(rules)

    def __iter__(self) -> Iterator[ValidationRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"<RuleRegistry(fields={self.fields})>"

    @property
    def fields(self) -> list[str]:
        """Distinct field keys, in first-seen order."""
        return list(dict.fromkeys(rule.field for rule in self._rules))

    def for_field(self, field: str) -> list[ValidationRule]:
        return [rule for rule in self._rules if rule.field == field]


def as_registry(rules: RuleRegistry | Iterable[ValidationRule]) -> RuleRegistry:
    if isinstance(rules, RuleRegistry):
        return rules
    return RuleRegistry(rules)
