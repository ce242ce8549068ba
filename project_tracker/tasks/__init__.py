"""Task list: local task store, task-list gateway and sync engine."""

from .store import TaskStore
from .gateway import TaskListGateway
from .sync import TaskSyncEngine, SyncReport

__all__ = ['TaskStore', 'TaskListGateway', 'TaskSyncEngine', 'SyncReport']
