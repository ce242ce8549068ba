"""Task-list provider backed by Apple Reminders via EventKit."""

from typing import Any, Dict, List, Optional
import logging

from ..core.exceptions import NotFoundError, ProviderUnavailable
from ..core.models import RemoteTask, TaskList
from ..utils.date import parse_date
from ..utils.eventkit import EventKitSession

PARENT_PREFIX = "Parent: "


def _split_parent(notes: Optional[str]):
    """Separate the ``Parent:`` line kept in reminder notes from the rest."""
    if not notes:
        return None, None
    parent = None
    kept = []
    for line in notes.splitlines():
        if line.startswith(PARENT_PREFIX):
            parent = line[len(PARENT_PREFIX):].strip() or None
        else:
            kept.append(line)
    return "\n".join(kept) or None, parent


class TaskListGateway:
    """Gateway exposing reminders lists as task lists.

    Reminders has no subtask link, so a remote parent id is stored as a
    ``Parent:`` line in the reminder notes.
    """

    def __init__(self, timeout: float = 30.0, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.session = EventKitSession("reminder", timeout=timeout, logger=self.logger)

    def _calendars(self):
        store = self.session.store()
        return store.calendarsForEntityType_(self.session.entity_type) or []

    def _calendar(self, list_id: str):
        for cal in self._calendars():
            if str(cal.calendarIdentifier()) == list_id:
                return cal
        raise NotFoundError(f"Task list '{list_id}' not found")

    def _reminder(self, task_id: str):
        reminder = self.session.store().calendarItemWithIdentifier_(task_id)
        if reminder is None:
            raise NotFoundError(f"Remote task '{task_id}' not found")
        return reminder

    def _to_remote(self, reminder) -> RemoteTask:
        notes, parent = _split_parent(str(reminder.notes()) if reminder.notes() else None)
        due = None
        components = reminder.dueDateComponents()
        if components and components.year() and components.month() and components.day():
            due = f"{components.year():04d}-{components.month():02d}-{components.day():02d}T00:00:00.000Z"
        return RemoteTask(
            id=str(reminder.calendarItemIdentifier()),
            title=str(reminder.title() or ''),
            status="completed" if reminder.isCompleted() else "needsAction",
            notes=notes,
            due=due,
            parent=parent,
        )

    def _apply(self, reminder, payload: Dict[str, Any]) -> None:
        if 'title' in payload:
            reminder.setTitle_(payload['title'])
        if 'status' in payload:
            reminder.setCompleted_(payload['status'] == "completed")
        if 'due' in payload:
            day = parse_date(payload['due']) if payload['due'] else None
            reminder.setDueDateComponents_(self.session.date_components(day) if day else None)
        if 'notes' in payload or 'parent' in payload:
            notes = payload.get('notes') or ""
            if payload.get('parent'):
                notes = f"{notes}\n{PARENT_PREFIX}{payload['parent']}".strip()
            reminder.setNotes_(notes or None)

    def _save(self, reminder) -> None:
        success, error = self.session.store().saveReminder_commit_error_(reminder, True, None)
        if not success:
            raise ProviderUnavailable(f"Failed to save reminder: {error}")

    def list_task_lists(self) -> List[TaskList]:
        def fetch():
            return [
                TaskList(id=str(cal.calendarIdentifier()), title=str(cal.title() or 'Untitled'))
                for cal in self._calendars()
            ]
        return self.session.call("list task lists", fetch)

    def create_task_list(self, title: str) -> TaskList:
        def create():
            store = self.session.store()
            ek = self.session.ek
            cal = ek.EKCalendar.calendarForEntityType_eventStore_(self.session.entity_type, store)
            cal.setTitle_(title)
            cal.setSource_(store.defaultCalendarForNewReminders().source())
            success, error = store.saveCalendar_commit_error_(cal, True, None)
            if not success:
                raise ProviderUnavailable(f"Failed to create reminders list '{title}': {error}")
            self.logger.info("Created reminders list '%s'", title)
            return TaskList(id=str(cal.calendarIdentifier()), title=title)
        return self.session.call("create task list", create)

    def get_task(self, list_id: str, task_id: str) -> RemoteTask:
        return self.session.call("get task", lambda: self._to_remote(self._reminder(task_id)))

    def insert_task(self, list_id: str, payload: Dict[str, Any]) -> RemoteTask:
        def insert():
            reminder = self.session.ek.EKReminder.reminderWithEventStore_(self.session.store())
            reminder.setCalendar_(self._calendar(list_id))
            self._apply(reminder, payload)
            self._save(reminder)
            return self._to_remote(reminder)
        return self.session.call("insert task", insert)

    def update_task(self, list_id: str, task_id: str, payload: Dict[str, Any]) -> RemoteTask:
        def update():
            reminder = self._reminder(task_id)
            self._apply(reminder, payload)
            self._save(reminder)
            return self._to_remote(reminder)
        return self.session.call("update task", update)
