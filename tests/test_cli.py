"""End-to-end tests of the command line entry point with fake providers."""

from datetime import date, timedelta

import pytest

from project_tracker.main import build_parser, main
from project_tracker.sheets.grid import Workbook

from tests.fakes import FakeCalendarGateway, FakeTaskListGateway


@pytest.fixture
def workbook_path(tmp_path):
    return tmp_path / "tracker.json"


@pytest.fixture
def run(workbook_path):
    def _run(*args):
        return main(["--workbook", str(workbook_path), *args])
    return _run


@pytest.fixture
def fake_tasks(monkeypatch):
    gateway = FakeTaskListGateway()
    monkeypatch.setattr("project_tracker.commands.tasks.TaskListGateway",
                        lambda *args, **kwargs: gateway)
    return gateway


@pytest.fixture
def fake_calendar(monkeypatch):
    gateway = FakeCalendarGateway()
    monkeypatch.setattr("project_tracker.commands.calendar.CalendarGateway",
                        lambda *args, **kwargs: gateway)
    return gateway


@pytest.fixture
def project(run):
    assert run("setup") == 0
    assert run("add-project", "--sheet", "cobuild", "--title", "Acme rollout") == 0
    return 2


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_task_requires_subcommand():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["task"])


def test_setup_creates_sheets(run, workbook_path, tracker_home, capsys):
    assert run("setup") == 0
    workbook = Workbook.load(workbook_path)
    assert {"cobuild", "enablement", "Audit Log", "Tasks"} <= set(workbook.sheet_names())
    assert (tracker_home / "config.json").exists()
    assert "Setup complete." in capsys.readouterr().out


def test_corrupt_workbook_is_not_overwritten(run, project, workbook_path, capsys):
    workbook_path.write_text(workbook_path.read_text()[:-5])
    before = workbook_path.read_bytes()

    assert run("setup") == 1
    assert "cannot be read" in capsys.readouterr().out
    assert workbook_path.read_bytes() == before


def test_add_project_to_unknown_sheet_fails(run):
    assert run("setup") == 0
    assert run("add-project", "--sheet", "Tasks", "--title", "Nope") == 1


def test_edit_then_history(run, project, workbook_path, capsys):
    assert run("edit", "--sheet", "cobuild", "--row", "2", "--column", "15",
               "--value", "Send proposal") == 0
    out = capsys.readouterr().out
    assert "Change recorded in the audit log" in out
    assert "Next check-in:" in out

    sheet = Workbook.load(workbook_path).get_sheet("cobuild")
    assert sheet.get_value(2, 13) is not None

    assert run("history", "--sheet", "cobuild", "--row", "2", "--column", "15") == 0
    out = capsys.readouterr().out
    assert "History of 'Next Steps' for Acme rollout" in out
    assert "-> Send proposal" in out


def test_task_add_and_list(run, project, fake_tasks, capsys):
    assert run("task", "add", "--sheet", "cobuild", "--row", "2",
               "--description", "Call client", "--due", "+7") == 0
    out = capsys.readouterr().out
    assert "Task created: Call client" in out
    assert "Synced as remote task" in out
    [(_, payload)] = fake_tasks.inserted
    assert payload["title"] == "Call client"

    assert run("task", "list", "--sheet", "cobuild", "--row", "2") == 0
    assert "Call client" in capsys.readouterr().out


def test_task_add_offline_keeps_local_task(run, project, fake_tasks, workbook_path, capsys):
    fake_tasks.fail_on.add("list_task_lists")
    assert run("task", "add", "--sheet", "cobuild", "--row", "2", "--description", "Call client") == 0
    assert "Not synced to the task list" in capsys.readouterr().out
    assert Workbook.load(workbook_path).get_sheet("Tasks").last_row == 2


def test_calendar_enable_create_and_drift(run, project, fake_calendar, capsys):
    due = (date.today() + timedelta(days=30)).strftime("%m/%d/%Y")
    assert run("edit", "--sheet", "cobuild", "--row", "2", "--column", "9", "--value", due) == 0

    assert run("calendar", "enable", "--sheet", "cobuild", "--row", "2", "--create") == 0
    assert len(fake_calendar.events) == 1
    capsys.readouterr()

    assert run("calendar", "drift", "--sheet", "cobuild") == 0
    assert "in sync" in capsys.readouterr().out

    assert run("calendar", "remove", "--sheet", "cobuild", "--row", "2") == 0
    assert fake_calendar.events == {}


def test_calendar_create_twice_skips_existing_event(run, project, fake_calendar, capsys):
    due = (date.today() + timedelta(days=30)).strftime("%m/%d/%Y")
    assert run("edit", "--sheet", "cobuild", "--row", "2", "--column", "9", "--value", due) == 0
    assert run("calendar", "create", "--sheet", "cobuild", "--row", "2") == 0
    capsys.readouterr()

    assert run("calendar", "create", "--sheet", "cobuild", "--row", "2") == 0
    out = capsys.readouterr().out
    assert "0 event(s) created" in out
    assert "Skipped completion: an event already exists" in out
    assert len(fake_calendar.events) == 1


def test_calendar_failure_reports_completed_events(run, project, fake_calendar, capsys):
    due = date.today() + timedelta(days=30)
    assert run("edit", "--sheet", "cobuild", "--row", "2", "--column", "9",
               "--value", due.strftime("%m/%d/%Y")) == 0
    capsys.readouterr()
    fake_calendar.fail_on.add("add_reminder")

    assert run("calendar", "create", "--sheet", "cobuild", "--row", "2") == 1
    out = capsys.readouterr().out
    assert "Calendar unavailable" in out
    assert f"Completed before the failure: Deadline: {due:%m/%d/%Y} (all-day)" in out


def test_calendar_action_needs_row(run, project, fake_calendar, capsys):
    assert run("calendar", "create", "--sheet", "cobuild") == 1
    assert "needs --sheet and --row" in capsys.readouterr().out


def test_calendar_provider_failure_exits_nonzero(run, project, fake_calendar, capsys):
    fake_calendar.fail_on.add("list_events")
    assert run("calendar", "test") == 1
    assert "Calendar unavailable" in capsys.readouterr().out


def test_calendar_test_reports_calendar(run, project, fake_calendar, capsys):
    assert run("calendar", "test") == 0
    assert "Calendar access OK: Test Calendar" in capsys.readouterr().out
