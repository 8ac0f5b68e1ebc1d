"""
Row classification and remediation for the Validate step.

A classification partitions rows into valid / fixable / unfixable entries.
Fixes never re-run the full classification: only the touched rows are
re-validated and migrated between partitions. Row sets are immutable; every
operation returns a new one.
"""

from __future__ import annotations

import asyncio
import bisect
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Sequence

from contact_import.config import ImportSettings, get_settings
from contact_import.shared.exceptions import EntryNotFoundError
from contact_import.shared.logging import get_logger
from contact_import.validation.rules import RuleRegistry, ValidationRule, as_registry
from contact_import.validation.schemas import RowError
from contact_import.validation.validator import RowValidator

logger = get_logger(__name__)

Row = dict[str, str]


@dataclass(frozen=True)
class ClassifiedEntry:
    """A row with its 1-based position in the classified sequence."""

    index: int
    row: Mapping[str, str]
    errors: tuple[RowError, ...] = ()

    @property
    def is_fixable(self) -> bool:
        return any(error.fixable for error in self.errors)

    def fixes(self) -> dict[str, str]:
        """Field -> suggestion for every fixable error carrying one."""
        return {
            error.field: error.suggestion
            for error in self.errors
            if error.fixable and error.suggestion
        }


@dataclass(frozen=True)
class ClassifiedRowSet:
    """Three disjoint partitions of one row sequence.

    ``valid`` is kept ordered by index so committed rows follow file order.
    """

    valid: tuple[ClassifiedEntry, ...] = ()
    fixable: tuple[ClassifiedEntry, ...] = ()
    unfixable: tuple[ClassifiedEntry, ...] = ()

    @property
    def total(self) -> int:
        return len(self.valid) + len(self.fixable) + len(self.unfixable)

    @property
    def skipped_count(self) -> int:
        """Rows that would be left out of an import right now."""
        return len(self.fixable) + len(self.unfixable)

    @property
    def valid_rows(self) -> list[Row]:
        return [dict(entry.row) for entry in self.valid]

    def indices(self) -> list[int]:
        """All entry indices across partitions, sorted."""
        return sorted(
            entry.index for entry in (*self.valid, *self.fixable, *self.unfixable)
        )

    def entries(self) -> list[ClassifiedEntry]:
        """All entries ordered by index."""
        return sorted((*self.valid, *self.fixable, *self.unfixable), key=lambda e: e.index)

    def summary(self) -> dict[str, int]:
        return {
            "valid": len(self.valid),
            "fixable": len(self.fixable),
            "unfixable": len(self.unfixable),
        }


def _insert_valid(valid: Sequence[ClassifiedEntry], entry: ClassifiedEntry) -> tuple[ClassifiedEntry, ...]:
    items = list(valid)
    position = bisect.bisect_left([e.index for e in items], entry.index)
    items.insert(position, entry)
    return tuple(items)


class RowClassifier:
    """Classifies rows and applies fixes against a fixed rule set."""

    def __init__(
        self,
        rules: RuleRegistry | Iterable[ValidationRule],
        validator: RowValidator | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        """Initialize classifier.

        Args:
            rules: Rules every row is validated against.
            validator: Optional row validator (for DI).
            settings: Import settings; defaults to the cached settings.
        """
        self._settings = settings or get_settings()
        self._rules = as_registry(rules)
        self._validator = validator or RowValidator(self._settings)

    @property
    def rules(self) -> RuleRegistry:
        return self._rules

    def _entry(self, index: int, row: Mapping[str, str]) -> ClassifiedEntry:
        errors = self._validator.validate_row(row, self._rules)
        return ClassifiedEntry(index=index, row=dict(row), errors=tuple(errors))

    def classify_rows(self, rows: Sequence[Mapping[str, str]]) -> ClassifiedRowSet:
        """Partition rows into valid, fixable and unfixable entries.

        Args:
            rows: Rows in their original order.

        Returns:
            Classified row set; entry indices are 1-based positions in ``rows``.
        """
        valid: list[ClassifiedEntry] = []
        fixable: list[ClassifiedEntry] = []
        unfixable: list[ClassifiedEntry] = []

        for position, row in enumerate(rows, start=1):
            entry = self._entry(position, row)
            if not entry.errors:
                valid.append(entry)
            elif entry.is_fixable:
                fixable.append(entry)
            else:
                unfixable.append(entry)

        result = ClassifiedRowSet(valid=tuple(valid), fixable=tuple(fixable), unfixable=tuple(unfixable))
        logger.info(
            "Rows classified",
            extra={"total_rows": len(rows), **result.summary()},
        )
        return result

    async def classify(self, rows: Sequence[Mapping[str, str]]) -> ClassifiedRowSet:
        """Classify rows off the caller's synchronous path.

        Yields to the event loop once (after the configured deferral), then
        runs the whole classification without further suspension. Cancelling
        the awaiting task before it resumes abandons the work.
        """
        snapshot = [dict(row) for row in rows]
        await asyncio.sleep(self._settings.classify_defer_seconds)
        return self.classify_rows(snapshot)

    def _revalidate(
        self,
        row_set: ClassifiedRowSet,
        position: int,
        updated_row: Mapping[str, str],
    ) -> ClassifiedRowSet:
        entry = row_set.fixable[position]
        refreshed = self._entry(entry.index, updated_row)
        remaining = row_set.fixable[:position] + row_set.fixable[position + 1:]

        if not refreshed.errors:
            return replace(
                row_set,
                valid=_insert_valid(row_set.valid, refreshed),
                fixable=remaining,
            )

        fixable = list(row_set.fixable)
        fixable[position] = refreshed
        return replace(row_set, fixable=tuple(fixable))

    def apply_fix(
        self,
        row_set: ClassifiedRowSet,
        entry_index: int,
        field: str,
        suggestion: str,
    ) -> ClassifiedRowSet:
        """Apply one replacement value to one fixable entry.

        Args:
            row_set: Current classification.
            entry_index: Position of the entry in ``row_set.fixable``.
            field: Field key to overwrite.
            suggestion: New value.

        Returns:
            New row set; the entry moves to ``valid`` when it no longer has
            errors, otherwise its errors are refreshed in place.

        Raises:
            EntryNotFoundError: If ``entry_index`` is out of range.
        """
        if not 0 <= entry_index < len(row_set.fixable):
            raise EntryNotFoundError(
                f"No fixable entry at position {entry_index}",
                details={"entry_index": entry_index, "fixable_count": len(row_set.fixable)},
            )

        entry = row_set.fixable[entry_index]
        updated = {**entry.row, field: suggestion}
        result = self._revalidate(row_set, entry_index, updated)

        logger.info(
            "Fix applied",
            extra={
                "row_index": entry.index,
                "field": field,
                "promoted": len(result.valid) > len(row_set.valid),
            },
        )
        return result

    def auto_fix_all(self, row_set: ClassifiedRowSet) -> ClassifiedRowSet:
        """Apply every available suggestion to every fixable entry.

        Entries without a usable suggestion are left untouched. Each changed
        entry is re-validated individually.
        """
        valid = list(row_set.valid)
        remaining: list[ClassifiedEntry] = []
        promoted = 0

        for entry in row_set.fixable:
            fixes = entry.fixes()
            if not fixes:
                remaining.append(entry)
                continue

            refreshed = self._entry(entry.index, {**entry.row, **fixes})
            if refreshed.errors:
                remaining.append(refreshed)
            else:
                valid = list(_insert_valid(valid, refreshed))
                promoted += 1

        logger.info(
            "Auto-fix applied",
            extra={"promoted": promoted, "still_fixable": len(remaining)},
        )
        return replace(row_set, valid=tuple(valid), fixable=tuple(remaining))


__all__ = [
    "ClassifiedEntry",
    "ClassifiedRowSet",
    "RowClassifier",
]
