"""Task commands: add, subtask, list, status, sync and purge."""

from datetime import datetime
from typing import Callable, Optional
import logging

from ..core.config import TrackerConfig, get_backup_dir
from ..core.exceptions import DuplicateDetected, ProviderUnavailable, TrackerError
from ..core.models import Status
from ..sheets.grid import Workbook
from ..sheets.projects import project_sheet
from ..tasks.gateway import TaskListGateway
from ..tasks.store import TaskStore
from ..tasks.sync import TaskSyncEngine
from ..utils.date import parse_due_input


class TaskCommand:
    """Task operations on the tasks sheet and the task-list provider."""

    def __init__(self, config: TrackerConfig, workbook: Workbook, verbose: bool = False,
                 gateway=None, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.workbook = workbook
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

        gateway = gateway or TaskListGateway(timeout=config.provider_timeout)
        self.store = TaskStore(workbook, config, clock=clock)
        self.engine = TaskSyncEngine(self.store, gateway)
        self.store.sync_engine = self.engine

    def _project(self, sheet_name: str, row: int):
        projects = project_sheet(self.workbook, sheet_name, self.config)
        projects.ensure_id(row)
        return projects.read(row)

    def add(self, sheet_name: str, row: int, description: str, task_type: str = "Follow-up",
            due: Optional[str] = None, priority: str = "Low") -> bool:
        try:
            project = self._project(sheet_name, row)
            task = self.store.create_task(
                project.id, project.title, sheet_name, description,
                task_type=task_type, due_date=parse_due_input(due), priority=priority,
            )
        except DuplicateDetected as e:
            print(f"Task already created (row {e.row}, id {e.existing.id}) - not added again.")
            return True
        except TrackerError as e:
            print(f"Could not add task: {e}")
            return False

        print(f"Task created: {task.description} ({task.id}, row {task.row})")
        if task.due_date:
            print(f"  Due: {task.due_date:%m/%d/%Y}")
        self._report_link(task)
        return True

    def subtask(self, task_id: str, description: str) -> bool:
        try:
            task = self.store.create_subtask(task_id, description)
        except DuplicateDetected as e:
            print(f"Subtask already created (row {e.row}, id {e.existing.id}) - not added again.")
            return True
        except TrackerError as e:
            print(f"Could not add subtask: {e}")
            return False
        print(f"Subtask created under {task_id}: {task.description} ({task.id})")
        self._report_link(task)
        return True

    def _report_link(self, task) -> None:
        if not self.config.tasks_auto_sync:
            return
        if task.external_id:
            print(f"  Synced as remote task {task.external_id}")
        else:
            print("  Not synced to the task list; run 'task sync' to retry")

    def list_tasks(self, sheet_name: str, row: int) -> bool:
        try:
            project = self._project(sheet_name, row)
        except TrackerError as e:
            print(f"Could not read project: {e}")
            return False
        total, lines = self.store.summarize_project(project.id)
        print(f"Tasks for: {project.title}")
        print("=" * 40)
        if not total:
            print("No tasks yet.")
            return True
        print(f"Total: {total}\n")
        for line in lines:
            print(line)
        return True

    def status(self, task_id: str, status: str) -> bool:
        try:
            task = self.store.update_status(task_id, status)
        except TrackerError as e:
            print(f"Could not update status: {e}")
            return False
        print(f"{task.id}: {task.status.value}")
        if task.external_id:
            try:
                self.engine.upsert(task.id)
            except ProviderUnavailable as e:
                print(f"  Status saved locally; remote update failed: {e}")
        return True

    def sync(self, sheet_name: str, row: int) -> bool:
        try:
            project = self._project(sheet_name, row)
        except TrackerError as e:
            print(f"Could not read project: {e}")
            return False
        report = self.engine.sync_project(project.id)
        print(report.summary())
        for task_id, reason in report.failed:
            print(f"  {task_id}: {reason}")
        return report.ok

    def purge(self, status: str) -> bool:
        try:
            target = Status.parse(status)
            removed = self.store.purge(lambda t: t.status is target, get_backup_dir())
        except TrackerError as e:
            print(f"Purge failed: {e}")
            return False
        print(f"Removed {removed} task(s) with status {target.value} (backup written first)")
        return True
