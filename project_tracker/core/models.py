"""
Domain models for project-tracker.

This module contains the records stored in the workbook (projects, audit
entries, tasks), the provider-side views of calendar events and remote
tasks, and the closed enumerations used throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional
import logging
import uuid

from .exceptions import ValidationError
from ..utils.date import coerce_date, coerce_datetime


logger = logging.getLogger(__name__)


class _ParseableEnum(Enum):
    """Enum accepting its display value (case-insensitive) at the boundary."""

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text or member.name.lower() == text:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(f"Unrecognized {cls.__name__} '{value}' (expected one of: {allowed})")


class Status(_ParseableEnum):
    """Lifecycle status shared by projects and tasks."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"
    BLOCKED = "Blocked"
    CANCELLED = "Cancelled"


class Priority(_ParseableEnum):
    """Task priority levels."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskType(_ParseableEnum):
    """Kinds of task rows."""

    FOLLOW_UP = "Follow-up"
    MILESTONE = "Milestone"
    CHECK_IN = "Check-in"
    DELIVERABLE = "Deliverable"
    SUBTASK = "Subtask"


class EventKind(_ParseableEnum):
    """The two calendar events a project may own."""

    CHECK_IN = "check-in"
    COMPLETION = "completion"


class DriftKind(_ParseableEnum):
    """Classification of a project's sheet dates against its calendar events."""

    SYNC_DISABLED = "sync-disabled"
    MISSING_CHECKIN = "missing-checkin"
    MISSING_COMPLETION = "missing-completion"
    DIFFERENT_CHECKIN = "different-checkin"
    DIFFERENT_COMPLETION = "different-completion"


def generate_project_id(prefix: str = "proj_") -> str:
    return prefix + uuid.uuid4().hex[:8]


def generate_task_id() -> str:
    return "task_" + uuid.uuid4().hex[:8]


@dataclass
class ProjectRow:
    """One tracked project row in a tracked sheet."""

    id: str
    title: str
    source_sheet: str
    row: int
    status: Optional[Status] = None
    completion_date: Optional[date] = None
    last_check_in: Optional[datetime] = None
    next_check_in: Optional[datetime] = None
    activity_note: str = ""
    calendar_sync_enabled: bool = False

    @property
    def has_dates(self) -> bool:
        return self.completion_date is not None or self.next_check_in is not None


AUDIT_HEADERS = [
    "Timestamp", "Project UUID", "Project Title", "Sheet", "Row", "Column",
    "Field Name", "Old Value", "New Value", "User Email",
]


@dataclass(frozen=True)
class AuditEntry:
    """Immutable audit ledger record."""

    timestamp: datetime
    project_id: str
    project_title: str
    sheet_name: str
    row: int
    column: int
    field_name: str
    old_value: str
    new_value: str
    actor: str

    def to_row(self) -> List[Any]:
        return [
            self.timestamp, self.project_id, self.project_title, self.sheet_name,
            self.row, self.column, self.field_name, self.old_value,
            self.new_value, self.actor,
        ]

    @classmethod
    def from_row(cls, values: List[Any]) -> AuditEntry:
        values = list(values) + [None] * (len(AUDIT_HEADERS) - len(values))
        return cls(
            timestamp=coerce_datetime(values[0]),
            project_id=str(values[1] or ""),
            project_title=str(values[2] or ""),
            sheet_name=str(values[3] or ""),
            row=int(values[4] or 0),
            column=int(values[5] or 0),
            field_name=str(values[6] or ""),
            old_value=str(values[7] if values[7] is not None else ""),
            new_value=str(values[8] if values[8] is not None else ""),
            actor=str(values[9] or "unknown"),
        )


TASK_HEADERS = [
    "Task ID", "Parent Task ID", "Project UUID", "Project Name", "Task Description",
    "Task Type", "Due Date", "Due Time", "Duration (min)", "Status", "Priority",
    "Assigned To", "Source", "Notes", "Calendar Sync", "External Task ID",
    "Created Date", "Completed Date", "Last Modified",
]


def _cell_enum(enum_cls, value: Any, default, row: Optional[int]):
    """Parse a hand-editable task cell, falling back to ``default`` when unrecognized."""
    if value is None or value == "":
        return default
    try:
        return enum_cls.parse(value)
    except ValidationError:
        logger.warning("Task row %s: unknown %s %r, using %s",
                       row, enum_cls.__name__, value, default.value)
        return default


def _cell_int(value: Any, row: Optional[int]) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        logger.warning("Task row %s: duration %r is not a number, using 0", row, value)
        return 0


@dataclass
class TaskRecord:
    """A task or subtask row in the tasks sheet."""

    id: str
    project_id: str
    project_title: str
    description: str
    task_type: TaskType
    status: Status
    priority: Priority
    created_at: datetime
    last_modified: datetime
    parent_id: str = ""
    due_date: Optional[date] = None
    due_time: str = ""
    duration_minutes: int = 30
    assignee: str = ""
    source: str = ""
    notes: str = ""
    calendar_sync: bool = False
    external_id: str = ""
    completed_at: Optional[datetime] = None
    row: Optional[int] = None

    @property
    def is_subtask(self) -> bool:
        return bool(self.parent_id)

    def to_row(self) -> List[Any]:
        return [
            self.id, self.parent_id, self.project_id, self.project_title,
            self.description, self.task_type.value, self.due_date, self.due_time,
            self.duration_minutes, self.status.value, self.priority.value,
            self.assignee, self.source, self.notes, self.calendar_sync,
            self.external_id, self.created_at, self.completed_at, self.last_modified,
        ]

    @classmethod
    def from_row(cls, values: List[Any], row: Optional[int] = None) -> TaskRecord:
        values = list(values) + [None] * (len(TASK_HEADERS) - len(values))
        created_at = coerce_datetime(values[16])
        return cls(
            id=str(values[0] or ""),
            parent_id=str(values[1] or ""),
            project_id=str(values[2] or ""),
            project_title=str(values[3] or ""),
            description=str(values[4] or ""),
            task_type=_cell_enum(TaskType, values[5], TaskType.FOLLOW_UP, row),
            due_date=coerce_date(values[6]),
            due_time=str(values[7] or ""),
            duration_minutes=_cell_int(values[8], row),
            status=_cell_enum(Status, values[9], Status.NOT_STARTED, row),
            priority=_cell_enum(Priority, values[10], Priority.LOW, row),
            assignee=str(values[11] or ""),
            source=str(values[12] or ""),
            notes=str(values[13] or ""),
            calendar_sync=bool(values[14]),
            external_id=str(values[15] or ""),
            created_at=created_at,
            completed_at=coerce_datetime(values[17]),
            last_modified=coerce_datetime(values[18]) or created_at,
            row=row,
        )


@dataclass
class CalendarEvent:
    """Calendar event data as seen through a calendar gateway."""

    event_id: str
    title: str
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    description: Optional[str] = None
    is_all_day: bool = False
    calendar_name: str = ""
    color: Optional[str] = None
    reminders: List[int] = field(default_factory=list)

    @property
    def day(self) -> Optional[date]:
        return self.start_time.date() if self.start_time else None

    @property
    def kind(self) -> Optional[EventKind]:
        """Event kind parsed from the ``Type:`` token in the description."""
        for line in (self.description or "").splitlines():
            if line.startswith("Type:"):
                try:
                    return EventKind.parse(line[len("Type:"):])
                except ValidationError:
                    return None
        return None


@dataclass
class TaskList:
    """Remote task list."""

    id: str
    title: str


@dataclass
class RemoteTask:
    """Remote task entry as returned by a task-list gateway."""

    id: str
    title: str
    status: str = "needsAction"
    notes: Optional[str] = None
    due: Optional[str] = None
    parent: Optional[str] = None
