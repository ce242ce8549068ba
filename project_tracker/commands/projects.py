"""Project commands: add a project, edit a cell, show field history."""

from datetime import datetime
from typing import Callable, Optional
import logging

from ..audit.log import AuditLog
from ..audit.reconciler import EditReconciler, apply_edit
from ..core.config import TrackerConfig
from ..core.exceptions import TrackerError
from ..core.models import Status
from ..sheets.grid import Workbook
from ..sheets.projects import project_sheet
from ..utils.date import parse_date


class ProjectCommand:
    """Project row operations driven from the command line."""

    def __init__(self, config: TrackerConfig, workbook: Workbook, verbose: bool = False,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.workbook = workbook
        self.verbose = verbose
        self.clock = clock or datetime.now
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def add(self, sheet_name: str, title: str, status: Optional[str] = None,
            completion_date: Optional[str] = None) -> bool:
        try:
            projects = project_sheet(self.workbook, sheet_name, self.config)
            project = projects.add_project(
                title,
                status=Status.parse(status) if status else Status.NOT_STARTED,
                completion_date=parse_date(completion_date),
            )
        except TrackerError as e:
            print(f"Could not add project: {e}")
            return False
        print(f"Added '{project.title}' to {sheet_name} (row {project.row}, id {project.id})")
        return True

    def edit(self, sheet_name: str, row: int, column: int, value: str,
             actor: Optional[str] = None) -> bool:
        reconciler = EditReconciler(self.workbook, self.config, clock=self.clock)
        try:
            self.workbook.get_sheet(sheet_name)
        except TrackerError as e:
            print(f"Could not edit: {e}")
            return False

        outcome = apply_edit(reconciler, sheet_name, row, column, value or None, actor=actor)
        if outcome.error:
            print(f"Edit written, but reconciliation failed: {outcome.error}")
            return False
        if outcome.skipped_reason:
            print(f"Edit written (not logged: {outcome.skipped_reason})")
            return True

        print(f"Edit written to {sheet_name}!R{row}C{column}")
        if outcome.assigned_id:
            print(f"  Assigned project id {outcome.assigned_id}")
        if outcome.logged:
            print("  Change recorded in the audit log")
        else:
            print("  Audit entry could not be written")
        if outcome.cascaded:
            project = project_sheet(self.workbook, sheet_name, self.config).read(row)
            print(f"  Next check-in: {project.next_check_in:%m/%d/%Y}")
        return True

    def history(self, sheet_name: str, row: int, column: int,
                limit: Optional[int] = None) -> bool:
        try:
            projects = project_sheet(self.workbook, sheet_name, self.config)
            project = projects.read(row)
        except TrackerError as e:
            print(f"Could not read project: {e}")
            return False
        if not project.id:
            print("This project has no id yet, so it has no history.")
            return True

        field_name = projects.sheet.header(column)
        audit = AuditLog(self.workbook, self.config, clock=self.clock)
        entries = list(audit.history(project.id, field_name, limit))

        print(f"History of '{field_name}' for {project.title}")
        print("=" * 40)
        if not entries:
            print("No changes recorded.")
            return True
        for entry in entries:
            print(f"{entry.timestamp:%m/%d/%Y %H:%M}  {entry.actor}")
            print(f"  {entry.old_value} -> {entry.new_value}")
        return True
