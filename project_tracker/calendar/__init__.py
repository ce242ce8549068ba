"""Calendar module: slot finder, EventKit gateway and calendar sync engine."""

from .gateway import CalendarGateway
from .slots import find_slot, parse_time_of_day
from .sync import CalendarSyncEngine, DriftReport, EventCreation

__all__ = ['CalendarGateway', 'CalendarSyncEngine', 'DriftReport', 'EventCreation', 'find_slot', 'parse_time_of_day']
