"""
Wizard state and stage transitions.

The state is an immutable value owned by the controller. Every stage
function takes a state and returns a new one (or a TransitionResult wrapping
one); nothing here mutates shared structures.

Blocked transitions are reported as ``TransitionResult(moved=False)``.
Operations that make no sense in the current step raise WizardStateError.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Sequence
from uuid import UUID, uuid4

from contact_import.remediation.classifier import ClassifiedRowSet
from contact_import.shared.exceptions import (
    EntryNotFoundError,
    WizardBusyError,
    WizardStateError,
)

Row = Mapping[str, str]


class WizardStep(str, Enum):
    """Wizard stages, in order."""

    UPLOAD = "upload"
    PREVIEW = "preview"
    VALIDATE = "validate"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class WizardState:
    """Snapshot of one import session."""

    session_id: UUID = field(default_factory=uuid4)
    step: WizardStep = WizardStep.UPLOAD
    columns: tuple[str, ...] = ()
    rows: tuple[Row, ...] = ()

    # Bumped on every change to ``rows``.
    version: int = 0

    classification: ClassifiedRowSet | None = None
    classified_version: int | None = None
    busy: bool = False

    confirmed_rows: tuple[Row, ...] = ()
    skipped_count: int = 0

    parse_error: str | None = None

    @property
    def has_current_classification(self) -> bool:
        return self.classification is not None and self.classified_version == self.version


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a navigation attempt."""

    state: WizardState
    moved: bool
    reason: str | None = None

    @property
    def step(self) -> WizardStep:
        return self.state.step


def initial_state() -> WizardState:
    return WizardState()


def busy_reason(state: WizardState) -> str:
    if state.step is WizardStep.CONFIRM:
        return "Import is being committed"
    return "Validation is still running"


def _require_step(state: WizardState, *steps: WizardStep) -> None:
    if state.busy:
        raise WizardBusyError(
            busy_reason(state),
            details={"step": state.step.value},
        )
    if state.step not in steps:
        raise WizardStateError(
            f"Operation not available in the {state.step.value} step",
            details={"step": state.step.value, "allowed": [s.value for s in steps]},
        )


def _require_row(state: WizardState, row_index: int) -> None:
    if not 0 <= row_index < len(state.rows):
        raise EntryNotFoundError(
            f"No row at position {row_index}",
            details={"row_index": row_index, "row_count": len(state.rows)},
        )


def _with_rows(state: WizardState, rows: Sequence[Row]) -> WizardState:
    return replace(state, rows=tuple(rows), version=state.version + 1)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

def load_rows(state: WizardState, columns: Sequence[str], rows: Sequence[Row]) -> TransitionResult:
    """Upload -> Preview with freshly parsed rows."""
    _require_step(state, WizardStep.UPLOAD)
    loaded = replace(
        _with_rows(state, [dict(row) for row in rows]),
        step=WizardStep.PREVIEW,
        columns=tuple(columns),
        classification=None,
        classified_version=None,
        parse_error=None,
    )
    return TransitionResult(state=loaded, moved=True)


def reject_upload(state: WizardState, message: str) -> TransitionResult:
    """Stay in Upload and remember why the file was refused."""
    _require_step(state, WizardStep.UPLOAD)
    return TransitionResult(state=replace(state, parse_error=message), moved=False, reason=message)


# ---------------------------------------------------------------------------
# Preview edits
# ---------------------------------------------------------------------------

def edit_cell(state: WizardState, row_index: int, field_key: str, value: str) -> WizardState:
    _require_step(state, WizardStep.PREVIEW)
    _require_row(state, row_index)
    if field_key not in state.columns:
        raise EntryNotFoundError(
            f"Unknown field: {field_key}",
            details={"field": field_key, "columns": list(state.columns)},
        )

    rows = list(state.rows)
    rows[row_index] = {**rows[row_index], field_key: value}
    return _with_rows(state, rows)


def add_row(state: WizardState) -> WizardState:
    _require_step(state, WizardStep.PREVIEW)
    return _with_rows(state, [*state.rows, {column: "" for column in state.columns}])


def delete_row(state: WizardState, row_index: int) -> WizardState:
    _require_step(state, WizardStep.PREVIEW)
    _require_row(state, row_index)
    return _with_rows(state, [row for i, row in enumerate(state.rows) if i != row_index])


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------

def begin_validation(state: WizardState) -> TransitionResult:
    """Preview -> Validate.

    Reuses the cached classification when the rows have not changed since
    it was computed; otherwise marks the state busy until
    ``complete_validation`` supplies a fresh one.
    """
    _require_step(state, WizardStep.PREVIEW)
    if not state.rows:
        return TransitionResult(state=state, moved=False, reason="No rows to validate")

    if state.has_current_classification:
        return TransitionResult(state=replace(state, step=WizardStep.VALIDATE), moved=True)

    pending = replace(
        state,
        step=WizardStep.VALIDATE,
        classification=None,
        classified_version=None,
        busy=True,
    )
    return TransitionResult(state=pending, moved=True)


def complete_validation(
    state: WizardState,
    classification: ClassifiedRowSet,
    for_version: int,
) -> WizardState:
    """Store a finished classification computed for ``for_version``."""
    if not state.busy or state.step is not WizardStep.VALIDATE:
        raise WizardStateError(
            "No validation in progress",
            details={"step": state.step.value},
        )
    return replace(
        state,
        classification=classification,
        classified_version=for_version,
        busy=False,
    )


def abort_validation(state: WizardState) -> WizardState:
    """Return to Preview after a classification failed."""
    return replace(
        state,
        step=WizardStep.PREVIEW,
        classification=None,
        classified_version=None,
        busy=False,
    )


def update_classification(state: WizardState, classification: ClassifiedRowSet) -> WizardState:
    """Replace the classification after a fix, keeping it current."""
    _require_step(state, WizardStep.VALIDATE)
    return replace(state, classification=classification)


def current_classification(state: WizardState) -> ClassifiedRowSet:
    _require_step(state, WizardStep.VALIDATE)
    if state.classification is None:
        raise WizardStateError("Rows have not been classified")
    return state.classification


def accept_classification(state: WizardState) -> TransitionResult:
    """Validate -> Confirm, carrying valid rows and the skipped count."""
    if state.busy:
        return TransitionResult(state=state, moved=False, reason=busy_reason(state))
    _require_step(state, WizardStep.VALIDATE)

    classification = current_classification(state)
    if not classification.valid:
        return TransitionResult(state=state, moved=False, reason="No valid rows to import")

    confirmed = replace(
        state,
        step=WizardStep.CONFIRM,
        confirmed_rows=tuple(classification.valid_rows),
        skipped_count=classification.skipped_count,
    )
    return TransitionResult(state=confirmed, moved=True)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def _fold_fixes(state: WizardState) -> WizardState:
    """Write remediated values back into the working rows.

    The classification stays current for the folded rows, so re-entering
    Validate without further edits reuses it.
    """
    classification = state.classification
    if classification is None or not state.has_current_classification:
        return state

    folded = tuple(dict(entry.row) for entry in classification.entries())
    if list(folded) == [dict(row) for row in state.rows]:
        return state

    version = state.version + 1
    return replace(state, rows=folded, version=version, classified_version=version)


def go_back(state: WizardState) -> TransitionResult:
    """Step back one stage; Upload is never re-entered."""
    if state.busy:
        return TransitionResult(state=state, moved=False, reason=busy_reason(state))

    if state.step is WizardStep.CONFIRM:
        previous = replace(state, step=WizardStep.VALIDATE, confirmed_rows=(), skipped_count=0)
        return TransitionResult(state=previous, moved=True)

    if state.step is WizardStep.VALIDATE:
        previous = replace(_fold_fixes(state), step=WizardStep.PREVIEW)
        return TransitionResult(state=previous, moved=True)

    reason = (
        "Upload step cannot be re-entered; cancel to start over"
        if state.step is WizardStep.PREVIEW
        else "Already at the first step"
    )
    return TransitionResult(state=state, moved=False, reason=reason)


def finish(state: WizardState) -> list[dict[str, str]]:
    """Rows handed to the persistence collaborator."""
    _require_step(state, WizardStep.CONFIRM)
    return [dict(row) for row in state.confirmed_rows]


def begin_commit(state: WizardState) -> WizardState:
    """Hold the Confirm step busy while the rows are being committed."""
    _require_step(state, WizardStep.CONFIRM)
    return replace(state, busy=True)


def abort_commit(state: WizardState) -> WizardState:
    """Reopen the Confirm step after a failed commit."""
    return replace(state, busy=False)
