"""Tabular storage: workbook grid and typed project sheet access."""

from .grid import Sheet, Workbook
from .projects import ProjectSheet, project_sheet, find_project, setup_workbook

__all__ = ['Sheet', 'Workbook', 'ProjectSheet', 'project_sheet', 'find_project', 'setup_workbook']
