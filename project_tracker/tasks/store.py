"""Task records stored in the tasks sheet."""

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple
import logging

from ..core.config import TrackerConfig
from ..core.exceptions import (
    DuplicateDetected, NestingTooDeep, NotFoundError, TrackerError, ValidationError
)
from ..core.models import (
    TASK_HEADERS, Priority, Status, TaskRecord, TaskType, generate_task_id
)
from ..sheets.grid import Sheet, Workbook


class TaskStore:
    """Creates, reads and updates task and subtask rows."""

    def __init__(self, workbook: Workbook, config: TrackerConfig,
                 clock: Optional[Callable[[], datetime]] = None,
                 sync_engine=None,
                 logger: Optional[logging.Logger] = None):
        self.workbook = workbook
        self.config = config
        self.clock = clock or datetime.now
        self.sync_engine = sync_engine
        self.logger = logger or logging.getLogger(__name__)

    @property
    def sheet(self) -> Sheet:
        if not self.workbook.has_sheet(self.config.tasks_sheet):
            return self.workbook.add_sheet(self.config.tasks_sheet, TASK_HEADERS)
        return self.workbook.get_sheet(self.config.tasks_sheet)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def all_tasks(self) -> Iterator[TaskRecord]:
        for row, values in self.sheet.get_all_rows():
            if values and values[0]:
                yield TaskRecord.from_row(values, row=row)

    def get(self, task_id: str) -> Optional[TaskRecord]:
        if not task_id:
            return None
        for task in self.all_tasks():
            if task.id == task_id:
                return task
        return None

    def require(self, task_id: str) -> TaskRecord:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError(f"Task '{task_id}' not found")
        return task

    def tasks_for_project(self, project_id: str) -> Iterator[TaskRecord]:
        """Tasks of a project in storage order, parents and subtasks intermixed."""
        for task in self.all_tasks():
            if task.project_id == project_id:
                yield task

    def count(self) -> int:
        return sum(1 for _ in self.all_tasks())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _find_recent_duplicate(self, description: str, project_id: str,
                               now: datetime) -> Optional[TaskRecord]:
        window_start = now - timedelta(seconds=self.config.duplicate_window_seconds)
        for task in self.all_tasks():
            if (task.description == description
                    and task.project_id == project_id
                    and isinstance(task.created_at, datetime)
                    and task.created_at > window_start):
                return task
        return None

    def _insert(self, record: TaskRecord) -> TaskRecord:
        record.row = self.sheet.append_row(record.to_row())
        self.logger.info(
            "Created %s %s '%s' for project %s",
            record.task_type.value, record.id, record.description, record.project_id
        )
        if self.config.tasks_auto_sync and self.sync_engine is not None:
            self._auto_sync(record)
        return record

    def _auto_sync(self, record: TaskRecord) -> None:
        try:
            external_id = self.sync_engine.upsert(record.id)
        except TrackerError as e:
            self.logger.warning("Auto-sync skipped for %s: %s", record.id, e)
            return
        if external_id:
            record.external_id = external_id

    def create_task(self, project_id: str, project_title: str, source: str,
                    description: str, task_type=TaskType.FOLLOW_UP,
                    due_date: Optional[date] = None, priority=Priority.LOW,
                    actor: Optional[str] = None) -> TaskRecord:
        """
        Create a top-level task.

        Raises:
            ValidationError: description, project id or project title missing
            DuplicateDetected: the same description was created for the project
                inside the duplicate window
        """
        description = (description or "").strip()
        if not description:
            raise ValidationError("Task description is required")
        if not project_id or not project_title:
            raise ValidationError("Project is missing its id or title; run setup first")
        task_type = TaskType.parse(task_type)
        priority = Priority.parse(priority)

        now = self.clock()
        duplicate = self._find_recent_duplicate(description, project_id, now)
        if duplicate is not None:
            self.logger.info("Duplicate task suppressed: '%s' (existing %s)", description, duplicate.id)
            raise DuplicateDetected(duplicate, duplicate.row)

        record = TaskRecord(
            id=generate_task_id(),
            parent_id="",
            project_id=project_id,
            project_title=project_title,
            description=description,
            task_type=task_type,
            due_date=due_date,
            duration_minutes=self.config.task_duration,
            status=Status.NOT_STARTED,
            priority=priority,
            assignee=actor or self.config.current_actor(),
            source=source,
            created_at=now,
            last_modified=now,
        )
        return self._insert(record)

    def create_subtask(self, parent_id: str, description: str,
                       actor: Optional[str] = None) -> TaskRecord:
        """
        Create a subtask under a top-level task.

        Project fields are inherited from the parent.

        Raises:
            NotFoundError: the parent does not exist
            NestingTooDeep: the parent is itself a subtask
        """
        parent = self.require(parent_id)
        if parent.parent_id:
            raise NestingTooDeep(
                f"Task {parent.id} is already a subtask; only one level of nesting is allowed"
            )
        description = (description or "").strip()
        if not description:
            raise ValidationError("Subtask description is required")

        now = self.clock()
        duplicate = self._find_recent_duplicate(description, parent.project_id, now)
        if duplicate is not None:
            raise DuplicateDetected(duplicate, duplicate.row)

        record = TaskRecord(
            id=generate_task_id(),
            parent_id=parent.id,
            project_id=parent.project_id,
            project_title=parent.project_title,
            description=description,
            task_type=TaskType.SUBTASK,
            duration_minutes=self.config.subtask_duration,
            status=Status.NOT_STARTED,
            priority=Priority.LOW,
            assignee=actor or self.config.current_actor(),
            source=parent.source,
            created_at=now,
            last_modified=now,
        )
        return self._insert(record)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    def _write(self, record: TaskRecord) -> None:
        self.sheet.set_range(record.row, 1, record.to_row())

    def set_external_id(self, task_id: str, external_id: str) -> TaskRecord:
        """Remember the provider id. Once set it is never replaced or cleared."""
        if not external_id:
            raise ValidationError("External id cannot be empty")
        record = self.require(task_id)
        if record.external_id and record.external_id != external_id:
            raise ValidationError(
                f"Task {task_id} is already linked to external id {record.external_id}"
            )
        record.external_id = external_id
        self._write(record)
        return record

    def update_status(self, task_id: str, status) -> TaskRecord:
        record = self.require(task_id)
        record.status = Status.parse(status)
        now = self.clock()
        record.completed_at = now if record.status is Status.COMPLETE else None
        record.last_modified = now
        self._write(record)
        self.logger.info("Task %s is now %s", task_id, record.status.value)
        return record

    def purge(self, predicate: Callable[[TaskRecord], bool], backup_dir: Path) -> int:
        """
        Delete matching tasks after snapshotting the whole tasks sheet.

        Subtasks of a purged task are purged with it.
        """
        self.workbook.snapshot(self.config.tasks_sheet, backup_dir)
        tasks = list(self.all_tasks())
        doomed = {t.id for t in tasks if predicate(t)}
        doomed |= {t.id for t in tasks if t.parent_id in doomed}
        removed = self.sheet.delete_rows([t.row for t in tasks if t.id in doomed])
        self.logger.info("Purged %d task(s)", removed)
        return removed

    def summarize_project(self, project_id: str, limit: int = 10) -> Tuple[int, List[str]]:
        """Return the task count and display lines for the first ``limit`` tasks."""
        tasks = list(self.tasks_for_project(project_id))
        lines = []
        for index, task in enumerate(tasks[:limit], start=1):
            prefix = "  └─ " if task.is_subtask else ""
            lines.append(f"{index}. [{task.priority.value}] {prefix}{task.description}")
            lines.append(f"   {task.task_type.value} | {task.status.value}")
        if len(tasks) > limit:
            lines.append(f"... and {len(tasks) - limit} more")
        return len(tasks), lines
