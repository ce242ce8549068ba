"""
Command implementations for project-tracker.
"""

from .setup import SetupCommand
from .projects import ProjectCommand
from .tasks import TaskCommand
from .calendar import CalendarCommand

__all__ = [
    'SetupCommand',
    'ProjectCommand',
    'TaskCommand',
    'CalendarCommand',
]
