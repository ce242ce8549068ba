"""project-tracker - spreadsheet project tracking with audit, tasks and calendar sync."""

__version__ = "0.1.0"
