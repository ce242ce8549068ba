"""
In-memory fakes for the calendar and task-list providers.

They implement the gateway methods the sync engines call, keep their state
in plain dicts so tests can assert what happened "on the provider", and can
be told to fail specific calls.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from project_tracker.core.models import CalendarEvent, RemoteTask, TaskList


class FakeClock:
    """Controllable time source."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 2, 3, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class _Failing:
    def __init__(self):
        self.fail_on: Set[str] = set()

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise RuntimeError(f"simulated {name} failure")


class FakeCalendarGateway(_Failing):
    def __init__(self, name: str = "Test Calendar"):
        super().__init__()
        self.name = name
        self.events: Dict[str, CalendarEvent] = {}
        self.deleted: List[str] = []
        self._next = 0

    def _new_id(self) -> str:
        self._next += 1
        return f"evt-{self._next}"

    def add_existing(self, title: str, start: datetime, end: datetime,
                     description: Optional[str] = None, all_day: bool = False) -> CalendarEvent:
        event = CalendarEvent(self._new_id(), title, start, end, description, is_all_day=all_day,
                              calendar_name=self.name)
        self.events[event.event_id] = event
        return event

    def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        self._maybe_fail("list_events")
        found = [
            replace(e, reminders=list(e.reminders)) for e in self.events.values()
            if e.start_time < end and e.end_time > start
        ]
        return sorted(found, key=lambda e: e.start_time)

    def create_event(self, title: str, start: datetime, end: datetime,
                     description: Optional[str] = None) -> CalendarEvent:
        self._maybe_fail("create_event")
        event = self.add_existing(title, start, end, description)
        return replace(event, reminders=[])

    def create_all_day_event(self, title: str, day: date,
                             description: Optional[str] = None) -> CalendarEvent:
        self._maybe_fail("create_all_day_event")
        start = datetime.combine(day, datetime.min.time())
        event = self.add_existing(title, start, start + timedelta(days=1), description, all_day=True)
        return replace(event, reminders=[])

    def delete_event(self, event_id: str) -> None:
        self._maybe_fail("delete_event")
        del self.events[event_id]
        self.deleted.append(event_id)

    def set_color(self, event_id: str, color: str) -> None:
        self._maybe_fail("set_color")
        self.events[event_id].color = color

    def add_reminder(self, event_id: str, minutes_before: int) -> None:
        self._maybe_fail("add_reminder")
        self.events[event_id].reminders.append(minutes_before)

    def calendar_name(self) -> str:
        self._maybe_fail("calendar_name")
        return self.name


class FakeTaskListGateway(_Failing):
    def __init__(self):
        super().__init__()
        self.lists: Dict[str, TaskList] = {}
        self.tasks: Dict[str, Tuple[str, RemoteTask]] = {}
        self.inserted: List[Tuple[str, Dict[str, Any]]] = []
        self.updated: List[Tuple[str, str, Dict[str, Any]]] = []
        self.list_calls = 0
        self._next = 0

    def _new_id(self, prefix: str) -> str:
        self._next += 1
        return f"{prefix}-{self._next}"

    def list_task_lists(self) -> List[TaskList]:
        self._maybe_fail("list_task_lists")
        self.list_calls += 1
        return list(self.lists.values())

    def create_task_list(self, title: str) -> TaskList:
        self._maybe_fail("create_task_list")
        task_list = TaskList(self._new_id("list"), title)
        self.lists[task_list.id] = task_list
        return task_list

    def get_task(self, list_id: str, task_id: str) -> RemoteTask:
        self._maybe_fail("get_task")
        return replace(self.tasks[task_id][1])

    def insert_task(self, list_id: str, payload: Dict[str, Any]) -> RemoteTask:
        self._maybe_fail("insert_task")
        self.inserted.append((list_id, dict(payload)))
        task = RemoteTask(
            id=self._new_id("remote"),
            title=payload["title"],
            status=payload.get("status", "needsAction"),
            notes=payload.get("notes"),
            due=payload.get("due"),
            parent=payload.get("parent"),
        )
        self.tasks[task.id] = (list_id, task)
        return replace(task)

    def update_task(self, list_id: str, task_id: str, payload: Dict[str, Any]) -> RemoteTask:
        self._maybe_fail("update_task")
        self.updated.append((list_id, task_id, dict(payload)))
        _, task = self.tasks[task_id]
        for key in ("title", "status", "notes", "due", "parent"):
            if key in payload:
                setattr(task, key, payload[key])
        return replace(task)


PROJECT_HEADERS = [
    "Partner", "Owner", "Project Title", "Region", "Segment", "Stage", "Status",
    "Start Date", "Completion Date", "Kickoff Date", "Budget", "Last Check In",
    "Next Check In", "Notes", "Next Steps", "Contact", "Link", "Tags", "Priority",
    "UUID", "Calendar Sync",
]


def project_row(title, status="In Progress", completion=None, next_check_in=None,
                project_id=None, sync=False):
    """A tracked-sheet row laid out in the default column positions."""
    values = [None] * len(PROJECT_HEADERS)
    values[2] = title
    values[6] = status
    values[8] = completion
    values[12] = next_check_in
    values[19] = project_id
    values[20] = sync
    return values
