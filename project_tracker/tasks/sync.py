"""Pushes task records to an external task-list provider."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from ..core.exceptions import ProviderUnavailable, TrackerError
from ..core.models import Status, TaskRecord
from ..utils.date import to_iso_instant
from .store import TaskStore


@dataclass
class SyncReport:
    """Outcome of a batch sync."""

    synced: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        text = f"Synced {self.synced} task(s)"
        if self.failed:
            text += f", {len(self.failed)} failed: " + ", ".join(task_id for task_id, _ in self.failed)
        return text


def list_title(source: str, project_title: str) -> str:
    return f"[{source}] {project_title}"


def remote_status(status: Status) -> str:
    return "completed" if status is Status.COMPLETE else "needsAction"


class TaskSyncEngine:
    """Create-or-update of task records against a task-list gateway."""

    def __init__(self, store: TaskStore, gateway, logger: Optional[logging.Logger] = None):
        self.store = store
        self.gateway = gateway
        self.logger = logger or logging.getLogger(__name__)
        self._list_cache: Dict[str, str] = {}

    def _provider(self, what: str, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except ProviderUnavailable:
            raise
        except Exception as e:
            self.logger.error("Task provider %s failed: %s", what, e)
            raise ProviderUnavailable(f"Task provider {what} failed: {e}") from e

    def resolve_or_create_list(self, project_id: str, project_title: str, source: str) -> str:
        """
        Return the id of the list titled ``[source] project_title``, creating it if absent.

        Raises:
            ProviderUnavailable: the provider could not be reached
        """
        title = list_title(source, project_title)
        cached = self._list_cache.get(title)
        if cached:
            return cached

        for task_list in self._provider("list task lists", self.gateway.list_task_lists):
            if task_list.title == title:
                self._list_cache[title] = task_list.id
                return task_list.id

        created = self._provider("create task list", lambda: self.gateway.create_task_list(title))
        self.logger.info("Created task list '%s' for project %s", title, project_id)
        self._list_cache[title] = created.id
        return created.id

    def _new_payload(self, record: TaskRecord) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "title": record.description,
            "status": remote_status(record.status),
            "notes": f"Task ID: {record.id}\nProject: {record.project_title}",
        }
        if record.due_date:
            payload["due"] = to_iso_instant(record.due_date)
        if record.parent_id:
            parent = self.store.get(record.parent_id)
            if parent is not None and parent.external_id:
                payload["parent"] = parent.external_id
            else:
                self.logger.debug(
                    "Parent %s of %s is not synced yet; inserting without a parent link",
                    record.parent_id, record.id
                )
        return payload

    def upsert(self, task_id: str) -> Optional[str]:
        """
        Create or update the remote copy of one task.

        Returns the external id, or None when the task does not exist.

        Raises:
            ProviderUnavailable: any provider call failed
        """
        record = self.store.get(task_id)
        if record is None:
            self.logger.debug("Upsert skipped: task %s not found", task_id)
            return None

        list_id = self.resolve_or_create_list(record.project_id, record.project_title, record.source)

        if record.external_id:
            remote = self._provider(
                "get task", lambda: self.gateway.get_task(list_id, record.external_id)
            )
            payload = {
                "title": record.description,
                "status": remote_status(record.status),
                "notes": remote.notes,
                "due": to_iso_instant(record.due_date) if record.due_date else remote.due,
                "parent": remote.parent,
            }
            self._provider(
                "update task", lambda: self.gateway.update_task(list_id, record.external_id, payload)
            )
            self.logger.debug("Updated remote task %s for %s", record.external_id, record.id)
            return record.external_id

        payload = self._new_payload(record)
        remote = self._provider("insert task", lambda: self.gateway.insert_task(list_id, payload))
        self.store.set_external_id(record.id, remote.id)
        self.logger.info("Linked task %s to remote task %s", record.id, remote.id)
        return remote.id

    def sync_project(self, project_id: str) -> SyncReport:
        """Upsert every task of a project, top-level tasks before subtasks."""
        report = SyncReport()
        tasks = list(self.store.tasks_for_project(project_id))
        ordered = [t for t in tasks if not t.is_subtask] + [t for t in tasks if t.is_subtask]

        for task in ordered:
            try:
                if self.upsert(task.id):
                    report.synced += 1
            except TrackerError as e:
                self.logger.warning("Sync failed for task %s (%s): %s", task.id, task.description, e)
                report.failed.append((task.id, str(e)))

        self.logger.info("Project %s: %s", project_id, report.summary())
        return report
