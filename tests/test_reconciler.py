"""Tests for the edit reconciler."""

from datetime import date, timedelta
from unittest.mock import Mock

from project_tracker.audit.log import AuditLog
from project_tracker.audit.reconciler import ColumnReaction, EditEvent, EditReconciler, apply_edit
from project_tracker.sheets.projects import ProjectSheet

from tests.fakes import project_row

ACTIVITY = 15
STATUS = 7
COMPLETION = 9
ID = 20


def _reconciler(workbook, config, clock):
    return EditReconciler(workbook, config, clock=clock)


class TestSkips:
    def test_untracked_sheet(self, workbook, config, clock):
        outcome = _reconciler(workbook, config, clock).handle(
            EditEvent("Tasks", 2, 3, "a", "b")
        )
        assert outcome.skipped_reason == "untracked sheet"

    def test_header_row(self, workbook, config, clock):
        outcome = _reconciler(workbook, config, clock).handle(EditEvent("cobuild", 1, 3, "a", "b"))
        assert outcome.skipped_reason == "header row"

    def test_id_column_is_ignored(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        assert reconciler.reaction_for(ID) is ColumnReaction.IGNORE
        outcome = reconciler.handle(EditEvent("cobuild", 2, ID, "a", "b"))
        assert outcome.skipped_reason == "ignored column"
        assert reconciler.audit_log.entries() == []

    def test_no_semantic_change(self, workbook, config, clock):
        outcome = _reconciler(workbook, config, clock).handle(
            EditEvent("cobuild", 2, STATUS, "Blocked", "Blocked")
        )
        assert outcome.skipped_reason == "no change"


class TestLogging:
    def test_edit_is_logged_with_metadata(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        outcome = reconciler.handle(EditEvent("cobuild", 2, STATUS, "In Progress", "Blocked"))

        assert outcome.logged
        [entry] = reconciler.audit_log.entries()
        assert entry.project_id == "proj_acme0001"
        assert entry.project_title == "Acme rollout"
        assert entry.field_name == "Status"
        assert (entry.old_value, entry.new_value) == ("In Progress", "Blocked")
        assert entry.actor == "tester@example.com"

    def test_sentinels_for_absent_values(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        reconciler.handle(EditEvent("cobuild", 2, STATUS, None, "Blocked"))
        reconciler.handle(EditEvent("cobuild", 2, STATUS, "Blocked", None))
        first, second = reconciler.audit_log.entries()
        assert first.old_value == "[Initial value]"
        assert second.new_value == "[Cleared]"

    def test_dates_are_formatted(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        reconciler.handle(EditEvent("cobuild", 2, COMPLETION, date(2025, 3, 1), date(2025, 4, 15)))
        [entry] = reconciler.audit_log.entries()
        assert (entry.old_value, entry.new_value) == ("03/01/2025", "04/15/2025")

    def test_missing_id_is_assigned_before_logging(self, workbook, config, clock):
        sheet = workbook.get_sheet("enablement")
        row = sheet.append_row(project_row("Initech training"))
        reconciler = _reconciler(workbook, config, clock)

        outcome = reconciler.handle(EditEvent("enablement", row, STATUS, "In Progress", "Blocked"))

        assert outcome.assigned_id.startswith("enbl_")
        assert len(outcome.assigned_id) == len("enbl_") + 8
        assert sheet.get_value(row, ID) == outcome.assigned_id
        assert reconciler.audit_log.entries()[0].project_id == outcome.assigned_id

    def test_existing_id_is_never_regenerated(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        outcome = reconciler.handle(EditEvent("cobuild", 2, STATUS, "a", "b"))
        assert outcome.assigned_id is None
        assert workbook.get_sheet("cobuild").get_value(2, ID) == "proj_acme0001"


class TestCascade:
    def test_activity_edit_updates_both_check_in_dates(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        outcome = reconciler.handle(EditEvent("cobuild", 2, ACTIVITY, "Old", "Send proposal"))

        project = ProjectSheet(workbook.get_sheet("cobuild"), config).read(2)
        assert outcome.cascaded
        assert project.last_check_in == clock.now
        assert project.next_check_in == clock.now + timedelta(days=7)

    def test_check_in_cells_are_written_in_one_call(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        calls = []
        original = ProjectSheet.set_check_in

        def spy(self, row, last, nxt):
            calls.append((row, last, nxt))
            return original(self, row, last, nxt)

        ProjectSheet.set_check_in = spy
        try:
            reconciler.handle(EditEvent("cobuild", 2, ACTIVITY, "Old", "New"))
        finally:
            ProjectSheet.set_check_in = original

        assert calls == [(2, clock.now, clock.now + timedelta(days=7))]

    def test_non_activity_edit_does_not_cascade(self, workbook, config, clock):
        outcome = _reconciler(workbook, config, clock).handle(
            EditEvent("cobuild", 2, STATUS, "a", "b")
        )
        assert not outcome.cascaded
        assert workbook.get_sheet("cobuild").get_value(2, 13) is None

    def test_reaction_table_is_configurable(self, workbook, config, clock):
        config.column_reactions = {"status": "cascade", "id": "ignore"}
        reconciler = _reconciler(workbook, config, clock)
        assert reconciler.reaction_for(ACTIVITY) is ColumnReaction.LOG
        assert reconciler.handle(EditEvent("cobuild", 2, STATUS, "a", "b")).cascaded


class TestFailures:
    def test_handler_never_raises(self, workbook, config, clock):
        audit_log = Mock(spec=AuditLog)
        audit_log.record.side_effect = RuntimeError("boom")
        reconciler = EditReconciler(workbook, config, audit_log=audit_log, clock=clock)

        outcome = reconciler.handle(EditEvent("cobuild", 2, STATUS, "a", "b"))
        assert outcome.error == "boom"

    def test_metadata_failure_falls_back_to_unknown(self, workbook, config, clock):
        reconciler = _reconciler(workbook, config, clock)
        sheet = workbook.get_sheet("cobuild")
        original_header = sheet.header
        sheet.header = Mock(side_effect=RuntimeError("no header"))
        try:
            outcome = reconciler.handle(EditEvent("cobuild", 2, STATUS, "a", "b"))
        finally:
            sheet.header = original_header

        assert outcome.logged
        entry = reconciler.audit_log.entries()[0]
        assert entry.field_name == "Column 7"


def test_apply_edit_writes_then_reconciles(workbook, config, clock):
    reconciler = _reconciler(workbook, config, clock)
    outcome = apply_edit(reconciler, "cobuild", 2, COMPLETION, "03/01/2025")

    assert workbook.get_sheet("cobuild").get_value(2, COMPLETION) == date(2025, 3, 1)
    assert outcome.logged
    assert reconciler.audit_log.entries()[0].new_value == "03/01/2025"
