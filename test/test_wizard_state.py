"""
Unit tests for the wizard stage functions.
"""

import pytest

from contact_import.remediation.classifier import RowClassifier
from contact_import.shared.exceptions import (
    EntryNotFoundError,
    WizardBusyError,
    WizardStateError,
)
from contact_import.wizard import state as stages
from contact_import.wizard.state import WizardStep

COLUMNS = ["name", "phone"]
ROWS = [
    {"name": "Asha", "phone": "+919876543210"},
    {"name": "Ravi", "phone": "9876543211"},
]


@pytest.fixture
def classifier(test_settings, name_rule, phone_rule) -> RowClassifier:
    return RowClassifier([name_rule, phone_rule], settings=test_settings)


@pytest.fixture
def preview_state():
    return stages.load_rows(stages.initial_state(), COLUMNS, ROWS).state


@pytest.fixture
def validate_state(preview_state, classifier):
    pending = stages.begin_validation(preview_state).state
    classification = classifier.classify_rows(pending.rows)
    return stages.complete_validation(pending, classification, pending.version)


class TestUpload:
    """Tests for the Upload stage."""

    def test_initial_state(self):
        state = stages.initial_state()
        assert state.step is WizardStep.UPLOAD
        assert state.rows == ()
        assert state.busy is False

    def test_load_rows_moves_to_preview(self, preview_state):
        assert preview_state.step is WizardStep.PREVIEW
        assert preview_state.columns == ("name", "phone")
        assert len(preview_state.rows) == 2
        assert preview_state.version == 1

    def test_load_rows_copies_input(self):
        rows = [{"name": "Asha", "phone": "+1"}]
        state = stages.load_rows(stages.initial_state(), COLUMNS, rows).state
        rows[0]["name"] = "changed"
        assert state.rows[0]["name"] == "Asha"

    def test_reject_upload_stays(self):
        result = stages.reject_upload(stages.initial_state(), "CSV parsing error: bad")

        assert result.moved is False
        assert result.step is WizardStep.UPLOAD
        assert result.state.parse_error == "CSV parsing error: bad"

    def test_load_rows_outside_upload_raises(self, preview_state):
        with pytest.raises(WizardStateError):
            stages.load_rows(preview_state, COLUMNS, ROWS)


class TestPreviewEdits:
    """Tests for Preview edits."""

    def test_edit_cell(self, preview_state):
        edited = stages.edit_cell(preview_state, 1, "phone", "+919876543211")

        assert edited.rows[1]["phone"] == "+919876543211"
        assert preview_state.rows[1]["phone"] == "9876543211"
        assert edited.version == preview_state.version + 1

    def test_edit_unknown_field_raises(self, preview_state):
        with pytest.raises(EntryNotFoundError):
            stages.edit_cell(preview_state, 0, "email", "x")

    def test_edit_bad_index_raises(self, preview_state):
        with pytest.raises(EntryNotFoundError):
            stages.edit_cell(preview_state, 2, "name", "x")

    def test_add_row_has_every_column(self, preview_state):
        added = stages.add_row(preview_state)
        assert added.rows[-1] == {"name": "", "phone": ""}

    def test_delete_row(self, preview_state):
        deleted = stages.delete_row(preview_state, 0)
        assert [row["name"] for row in deleted.rows] == ["Ravi"]

    def test_edit_in_upload_raises(self):
        with pytest.raises(WizardStateError):
            stages.add_row(stages.initial_state())


class TestValidation:
    """Tests for entering and leaving Validate."""

    def test_begin_marks_busy(self, preview_state):
        result = stages.begin_validation(preview_state)

        assert result.moved is True
        assert result.step is WizardStep.VALIDATE
        assert result.state.busy is True

    def test_begin_without_rows_is_blocked(self):
        empty = stages.load_rows(stages.initial_state(), COLUMNS, []).state
        result = stages.begin_validation(empty)

        assert result.moved is False
        assert result.reason == "No rows to validate"
        assert result.step is WizardStep.PREVIEW

    def test_complete_stores_classification(self, validate_state):
        assert validate_state.busy is False
        assert validate_state.has_current_classification
        assert validate_state.classification.summary() == {"valid": 1, "fixable": 1, "unfixable": 0}

    def test_complete_without_pending_raises(self, validate_state):
        with pytest.raises(WizardStateError):
            stages.complete_validation(validate_state, validate_state.classification, validate_state.version)

    def test_busy_state_rejects_reads(self, preview_state):
        pending = stages.begin_validation(preview_state).state
        with pytest.raises(WizardBusyError):
            stages.current_classification(pending)

    def test_abort_returns_to_preview(self, preview_state):
        pending = stages.begin_validation(preview_state).state
        aborted = stages.abort_validation(pending)

        assert aborted.step is WizardStep.PREVIEW
        assert aborted.busy is False
        assert aborted.rows == preview_state.rows

    def test_cached_classification_is_reused(self, validate_state):
        preview = stages.go_back(validate_state).state
        result = stages.begin_validation(preview)

        assert result.state.busy is False
        assert result.state.classification is validate_state.classification


class TestAcceptClassification:
    """Tests for Validate -> Confirm."""

    def test_carries_valid_rows(self, validate_state):
        result = stages.accept_classification(validate_state)

        assert result.moved is True
        assert result.step is WizardStep.CONFIRM
        assert [row["name"] for row in result.state.confirmed_rows] == ["Asha"]
        assert result.state.skipped_count == 1

    def test_blocked_without_valid_rows(self, classifier):
        preview = stages.load_rows(stages.initial_state(), COLUMNS, [{"name": "", "phone": ""}]).state
        pending = stages.begin_validation(preview).state
        state = stages.complete_validation(pending, classifier.classify_rows(pending.rows), pending.version)

        result = stages.accept_classification(state)

        assert result.moved is False
        assert result.reason == "No valid rows to import"

    def test_blocked_while_busy(self, preview_state):
        pending = stages.begin_validation(preview_state).state
        result = stages.accept_classification(pending)
        assert result.moved is False

    def test_finish_returns_rows(self, validate_state):
        confirmed = stages.accept_classification(validate_state).state
        assert stages.finish(confirmed) == [{"name": "Asha", "phone": "+919876543210"}]

    def test_finish_outside_confirm_raises(self, validate_state):
        with pytest.raises(WizardStateError):
            stages.finish(validate_state)


class TestGoBack:
    """Tests for backward navigation."""

    def test_confirm_to_validate_clears_confirmed_rows(self, validate_state):
        confirmed = stages.accept_classification(validate_state).state
        result = stages.go_back(confirmed)

        assert result.step is WizardStep.VALIDATE
        assert result.state.confirmed_rows == ()
        assert result.state.classification is validate_state.classification

    def test_validate_to_preview_folds_fixes(self, validate_state, classifier):
        fixed = classifier.auto_fix_all(validate_state.classification)
        state = stages.update_classification(validate_state, fixed)

        result = stages.go_back(state)

        assert result.step is WizardStep.PREVIEW
        assert result.state.rows[1]["phone"] == "+919876543211"
        assert result.state.has_current_classification

    def test_preview_cannot_go_back(self, preview_state):
        result = stages.go_back(preview_state)

        assert result.moved is False
        assert result.step is WizardStep.PREVIEW
        assert "cancel" in result.reason

    def test_upload_cannot_go_back(self):
        result = stages.go_back(stages.initial_state())
        assert result.moved is False

    def test_busy_blocks_back(self, preview_state):
        pending = stages.begin_validation(preview_state).state
        result = stages.go_back(pending)

        assert result.moved is False
        assert result.state is pending
