"""
Core module for project-tracker - contains domain models, configuration, and exceptions.
"""

from .models import (
    Status,
    Priority,
    TaskType,
    EventKind,
    DriftKind,
    ProjectRow,
    AuditEntry,
    TaskRecord,
    CalendarEvent,
    TaskList,
    RemoteTask,
)

from .config import TrackerConfig, ColumnLayout

from .exceptions import (
    TrackerError,
    ConfigurationError,
    ValidationError,
    NestingTooDeep,
    NoDateSet,
    NotFoundError,
    DuplicateDetected,
    ProviderUnavailable,
)

__all__ = [
    # Models
    'Status',
    'Priority',
    'TaskType',
    'EventKind',
    'DriftKind',
    'ProjectRow',
    'AuditEntry',
    'TaskRecord',
    'CalendarEvent',
    'TaskList',
    'RemoteTask',
    # Configuration
    'TrackerConfig',
    'ColumnLayout',
    # Exceptions
    'TrackerError',
    'ConfigurationError',
    'ValidationError',
    'NestingTooDeep',
    'NoDateSet',
    'NotFoundError',
    'DuplicateDetected',
    'ProviderUnavailable',
]
