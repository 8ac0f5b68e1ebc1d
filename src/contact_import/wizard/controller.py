"""
Import wizard controller.

Owns one import session: holds the current WizardState, feeds it through
the stage functions, runs the deferred classification, and hands the
final valid rows to a persistence collaborator on confirm.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Protocol, Sequence

from contact_import.config import ImportSettings, get_settings
from contact_import.parsing.csv_parser import read_table, render_template
from contact_import.remediation.classifier import ClassifiedRowSet, RowClassifier
from contact_import.shared.exceptions import EntryNotFoundError, ParseError, WizardStateError
from contact_import.shared.logging import correlation_id_var, get_logger, log_with_context
from contact_import.validation.rules import RuleRegistry, ValidationRule, as_registry
from contact_import.wizard import state as stages
from contact_import.wizard.state import TransitionResult, WizardState, WizardStep

logger = get_logger(__name__)


class RowSink(Protocol):
    """Persistence collaborator receiving the final valid rows."""

    async def commit(self, rows: list[dict[str, str]]) -> int:
        """Store rows, returning how many were written."""
        ...


class ImportWizard:
    """Four-step CSV import session: Upload, Preview, Validate, Confirm."""

    def __init__(
        self,
        rules: RuleRegistry | Iterable[ValidationRule],
        template_fields: Sequence[Mapping[str, str]] | None = None,
        sink: RowSink | None = None,
        settings: ImportSettings | None = None,
        classifier: RowClassifier | None = None,
    ) -> None:
        """Initialize wizard.

        Args:
            rules: Validation rules supplied by the calling feature.
            template_fields: Optional ``{name, example}`` items for the CSV template.
            sink: Optional persistence collaborator used by ``confirm``.
            settings: Import settings; defaults to the cached settings.
            classifier: Optional classifier (for DI).
        """
        self._settings = settings or get_settings()
        self._rules = as_registry(rules)
        self._template_fields = list(template_fields or [])
        self._sink = sink
        self._classifier = classifier or RowClassifier(self._rules, settings=self._settings)
        self._state = stages.initial_state()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def step(self) -> WizardStep:
        return self._state.step

    @property
    def busy(self) -> bool:
        return self._state.busy

    @property
    def rows(self) -> list[dict[str, str]]:
        return [dict(row) for row in self._state.rows]

    @property
    def columns(self) -> list[str]:
        return list(self._state.columns)

    @property
    def classification(self) -> ClassifiedRowSet | None:
        return self._state.classification

    @property
    def skipped_count(self) -> int:
        return self._state.skipped_count

    @property
    def parse_error(self) -> str | None:
        return self._state.parse_error

    def template_csv(self) -> str:
        """CSV template built from the configured template fields."""
        if not self._template_fields:
            raise WizardStateError("No template fields configured")
        return render_template(self._template_fields)

    def _log(self, level: int, message: str, **extra: object) -> None:
        log_with_context(
            logger,
            level,
            message,
            session_id=str(self._state.session_id),
            step=self._state.step.value,
            **extra,
        )

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def submit_file(self, content: str | bytes) -> TransitionResult:
        """Parse raw CSV content and move to Preview.

        A fatal parse error keeps the wizard in Upload; the message is
        available on the result and on ``parse_error``.
        """
        try:
            columns, rows = read_table(
                content,
                has_header=self._settings.has_header,
                delimiter=self._settings.csv_delimiter,
                encoding=self._settings.csv_encoding,
            )
        except ParseError as e:
            result = stages.reject_upload(self._state, e.message)
            self._state = result.state
            self._log(logging.WARNING, "CSV upload rejected", error=e.message, **(e.details or {}))
            return result

        result = stages.load_rows(self._state, columns, rows)
        self._state = result.state
        self._log(logging.INFO, "CSV parsed", row_count=len(rows), columns=columns)
        return result

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def edit_cell(self, row_index: int, field: str, value: str) -> None:
        """Overwrite one cell; ``row_index`` is the 0-based row position."""
        self._state = stages.edit_cell(self._state, row_index, field, value)

    def add_row(self) -> None:
        """Append an empty row with every known column."""
        self._state = stages.add_row(self._state)

    def delete_row(self, row_index: int) -> None:
        self._state = stages.delete_row(self._state, row_index)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def advance(self) -> TransitionResult:
        """Move one step forward.

        Entering Validate classifies the rows unless a classification for
        the current rows already exists. Navigation is blocked while the
        classification runs.
        """
        step = self._state.step
        if self._state.busy:
            return TransitionResult(self._state, moved=False, reason=stages.busy_reason(self._state))

        if step is WizardStep.UPLOAD:
            return TransitionResult(self._state, moved=False, reason="Upload a CSV file first")

        if step is WizardStep.CONFIRM:
            return TransitionResult(self._state, moved=False, reason="Confirm the import to finish")

        if step is WizardStep.PREVIEW:
            result = stages.begin_validation(self._state)
            self._state = result.state
            if not result.moved:
                self._log(logging.INFO, "Transition blocked", reason=result.reason)
                return result
            if self._state.busy and not await self._run_classification():
                return TransitionResult(self._state, moved=False, reason="Import was cancelled")
            return TransitionResult(self._state, moved=True)

        result = stages.accept_classification(self._state)
        self._state = result.state
        if result.moved:
            self._log(
                logging.INFO,
                "Classification accepted",
                valid_count=len(self._state.confirmed_rows),
                skipped_count=self._state.skipped_count,
            )
        else:
            self._log(logging.INFO, "Transition blocked", reason=result.reason)
        return result

    async def _run_classification(self) -> bool:
        session_id = self._state.session_id
        version = self._state.version
        rows = self._state.rows

        token = correlation_id_var.set(str(session_id))
        try:
            classification = await self._classifier.classify(rows)
        except Exception:
            if self._state.session_id == session_id:
                self._state = stages.abort_validation(self._state)
            logger.exception("Row classification failed")
            raise
        finally:
            correlation_id_var.reset(token)

        if self._state.session_id != session_id:
            logger.info(
                "Discarding classification for a cancelled session",
                extra={"session_id": str(session_id)},
            )
            return False

        self._state = stages.complete_validation(self._state, classification, version)
        return True

    def back(self) -> TransitionResult:
        """Move one step back; Upload is never re-entered."""
        result = stages.go_back(self._state)
        self._state = result.state
        if not result.moved:
            self._log(logging.INFO, "Transition blocked", reason=result.reason)
        return result

    # ------------------------------------------------------------------
    # Validate: remediation
    # ------------------------------------------------------------------

    def apply_fix(self, entry_index: int, field: str) -> ClassifiedRowSet:
        """Apply the suggested value for ``field`` on one fixable entry.

        Args:
            entry_index: Position of the entry in the fixable partition.
            field: Field whose suggestion should be applied.

        Returns:
            The updated classification.

        Raises:
            EntryNotFoundError: If the entry or a suggestion for ``field`` is missing.
        """
        classification = stages.current_classification(self._state)
        if not 0 <= entry_index < len(classification.fixable):
            raise EntryNotFoundError(
                f"No fixable entry at position {entry_index}",
                details={"entry_index": entry_index, "fixable_count": len(classification.fixable)},
            )

        suggestion = classification.fixable[entry_index].fixes().get(field)
        if suggestion is None:
            raise EntryNotFoundError(
                f"No suggested fix for field: {field}",
                details={"entry_index": entry_index, "field": field},
            )

        updated = self._classifier.apply_fix(classification, entry_index, field, suggestion)
        self._state = stages.update_classification(self._state, updated)
        return updated

    def auto_fix_all(self) -> ClassifiedRowSet:
        """Apply every available suggestion to every fixable entry."""
        classification = stages.current_classification(self._state)
        updated = self._classifier.auto_fix_all(classification)
        self._state = stages.update_classification(self._state, updated)
        return updated

    # ------------------------------------------------------------------
    # Confirm / cancel
    # ------------------------------------------------------------------

    async def confirm(self) -> list[dict[str, str]]:
        """Commit the valid rows and end the session.

        Returns:
            The rows handed to the sink.

        Raises:
            WizardStateError: If the wizard is not in the Confirm step.
            WizardBusyError: If a commit for this session is already running.
        """
        rows = stages.finish(self._state)
        session_id = self._state.session_id
        skipped_count = self._state.skipped_count
        self._state = stages.begin_commit(self._state)

        written = len(rows)
        if self._sink is not None:
            try:
                written = await self._sink.commit(rows)
            except Exception:
                if self._state.session_id == session_id:
                    self._state = stages.abort_commit(self._state)
                raise

        self._log(
            logging.INFO,
            "Import committed",
            committed_count=written,
            skipped_count=skipped_count,
        )
        if self._state.session_id == session_id:
            self._state = stages.initial_state()
        return rows

    def cancel(self) -> None:
        """Discard all rows and return to a fresh Upload step."""
        self._log(logging.INFO, "Import cancelled", row_count=len(self._state.rows))
        self._state = stages.initial_state()


def run_wizard(
    rules: RuleRegistry | Iterable[ValidationRule],
    template_fields: Sequence[Mapping[str, str]] | None = None,
    sink: RowSink | None = None,
    settings: ImportSettings | None = None,
) -> ImportWizard:
    """Start a new import session."""
    return ImportWizard(rules, template_fields=template_fields, sink=sink, settings=settings)
