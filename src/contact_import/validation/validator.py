"""
Row validation against a rule registry.

Each rule contributes at most one error per row: the first failing check
of a rule ends that rule, and evaluation moves on to the next rule.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Iterable, Mapping

from contact_import.config import ImportSettings, get_settings
from contact_import.shared.logging import get_logger, log_with_context
from contact_import.validation.rules import (
    CustomIssue,
    FieldType,
    RuleRegistry,
    ValidationRule,
    as_registry,
)
from contact_import.validation.schemas import RowError

logger = get_logger(__name__)

# local@domain.tld, no whitespace, exactly one "@"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Characters dropped when building a phone suggestion
PHONE_FORMATTING = re.compile(r"[\s\-()]")

# Custom messages matching these are treated as length violations
LENGTH_HINTS = ("less than", "characters")


def suggest_phone(value: str, country_code: str) -> str:
    """Build the "+<code><digits>" replacement for a phone value."""
    return f"+{country_code}{PHONE_FORMATTING.sub('', value)}"


def is_length_message(message: str) -> bool:
    lowered = message.lower()
    return any(hint in lowered for hint in LENGTH_HINTS)


def _to_number(value: str) -> float | None:
    """Parse a finite decimal number; digit separators are not accepted."""
    if "_" in value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _is_date(value: str) -> bool:
    for parse in (date.fromisoformat, datetime.fromisoformat):
        try:
            parse(value.strip())
        except ValueError:
            continue
        return True
    return False


class RowValidator:
    """Applies validation rules to rows.

    Stateless apart from settings; ``validate_row`` is a pure function of
    its inputs.
    """

    def __init__(self, settings: ImportSettings | None = None) -> None:
        """Initialize validator.

        Args:
            settings: Import settings (country code, truncation length).
        """
        settings = settings or get_settings()
        self.default_country_code = settings.default_country_code
        self.max_text_length = settings.max_text_length

    def validate_row(
        self,
        row: Mapping[str, str],
        rules: RuleRegistry | Iterable[ValidationRule],
    ) -> list[RowError]:
        """Validate one row.

        Args:
            row: Field key to value mapping.
            rules: Rules evaluated in order.

        Returns:
            Errors in rule order; empty when the row is valid.
        """
        errors: list[RowError] = []
        for rule in as_registry(rules):
            error = self._check_rule(rule, row)
            if error is not None:
                errors.append(error)
        return errors

    def _check_rule(self, rule: ValidationRule, row: Mapping[str, str]) -> RowError | None:
        value = row.get(rule.field) or ""

        if not value.strip():
            if rule.required:
                return RowError(field=rule.field, message=f"{rule.field} is required")
            return None

        if rule.type is FieldType.PHONE and not value.startswith("+"):
            return RowError(
                field=rule.field,
                message="Phone must start with + and country code",
                fixable=True,
                suggestion=suggest_phone(value, self.default_country_code),
            )

        if rule.type is FieldType.EMAIL and not EMAIL_PATTERN.match(value):
            return RowError(field=rule.field, message="Invalid email format")

        number = _to_number(value) if rule.type is FieldType.NUMBER else None
        if rule.type is FieldType.NUMBER and number is None:
            return RowError(field=rule.field, message=f"{rule.field} must be a number")

        if rule.type is FieldType.DATE and not _is_date(value):
            return RowError(field=rule.field, message=f"{rule.field} must be a valid date")

        if rule.pattern is not None and not rule.pattern.search(value):
            return RowError(field=rule.field, message=f"{rule.field} format is invalid")

        if number is not None:
            if rule.min_value is not None and number < rule.min_value:
                return RowError(
                    field=rule.field,
                    message=f"{rule.field} must be at least {rule.min_value:g}",
                )
            if rule.max_value is not None and number > rule.max_value:
                return RowError(
                    field=rule.field,
                    message=f"{rule.field} must be at most {rule.max_value:g}",
                )

        if rule.custom is not None:
            return self._run_custom(rule, value, row)

        return None

    def _run_custom(
        self,
        rule: ValidationRule,
        value: str,
        row: Mapping[str, str],
    ) -> RowError | None:
        try:
            result = rule.custom(value, row)
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                "Custom validation check failed",
                field=rule.field,
                error=str(e),
            )
            return RowError(field=rule.field, message=f"{rule.field} check failed: {e}")

        if not result:
            return None

        if isinstance(result, CustomIssue):
            return RowError(
                field=rule.field,
                message=result.message,
                fixable=result.fixable and result.suggestion is not None,
                suggestion=result.suggestion if result.fixable else None,
            )

        # Plain message: length violations can be fixed by truncation.
        if is_length_message(result):
            return RowError(
                field=rule.field,
                message=result,
                fixable=True,
                suggestion=value[: self.max_text_length],
            )
        return RowError(field=rule.field, message=result)


def validate_row(
    row: Mapping[str, str],
    rules: RuleRegistry | Iterable[ValidationRule],
    settings: ImportSettings | None = None,
) -> list[RowError]:
    """Validate one row with a default-configured validator."""
    return RowValidator(settings).validate_row(row, rules)
