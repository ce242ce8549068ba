"""Typed access to tracked project sheets."""

from datetime import date, datetime
from typing import Iterator, List, Optional
import logging

from ..core.config import TrackerConfig
from ..core.exceptions import NotFoundError, ValidationError
from ..core.models import (
    AUDIT_HEADERS, TASK_HEADERS, ProjectRow, Status, generate_project_id
)
from ..utils.date import coerce_date, coerce_datetime
from .grid import Sheet, Workbook


class ProjectSheet:
    """Reads and writes ProjectRow values in a tracked sheet."""

    def __init__(self, sheet: Sheet, config: TrackerConfig,
                 logger: Optional[logging.Logger] = None):
        if not config.is_tracked(sheet.name):
            raise ValidationError(f"Sheet '{sheet.name}' is not a tracked project sheet")
        self.sheet = sheet
        self.config = config
        self.columns = config.columns
        self.logger = logger or logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return self.sheet.name

    def _status(self, value, row: int) -> Optional[Status]:
        if value in (None, ""):
            return None
        try:
            return Status.parse(value)
        except ValidationError:
            self.logger.warning("Row %d of '%s' has unrecognized status '%s'", row, self.name, value)
            return None

    def read(self, row: int) -> ProjectRow:
        if row <= 1 or row > self.sheet.last_row:
            raise NotFoundError(f"Row {row} is not a project row in '{self.name}'")
        get = lambda col: self.sheet.get_value(row, col)
        cols = self.columns
        return ProjectRow(
            id=str(get(cols.id) or ""),
            title=str(get(cols.title) or ""),
            source_sheet=self.name,
            row=row,
            status=self._status(get(cols.status), row),
            completion_date=coerce_date(get(cols.completion_date)),
            last_check_in=coerce_datetime(get(cols.last_check_in)),
            next_check_in=coerce_datetime(get(cols.next_check_in)),
            activity_note=str(get(cols.activity) or ""),
            calendar_sync_enabled=bool(get(cols.calendar_sync)),
        )

    def rows(self) -> Iterator[ProjectRow]:
        for row, _ in self.sheet.get_all_rows():
            yield self.read(row)

    def find(self, project_id: str) -> Optional[ProjectRow]:
        if not project_id:
            return None
        for row, values in self.sheet.get_all_rows():
            if self.sheet.get_value(row, self.columns.id) == project_id:
                return self.read(row)
        return None

    def ensure_id(self, row: int) -> str:
        """Return the row's id, generating and storing one if it is unset."""
        current = self.sheet.get_value(row, self.columns.id)
        if current:
            return str(current)
        new_id = generate_project_id(self.config.id_prefix_for(self.name))
        self.sheet.set_value(row, self.columns.id, new_id)
        self.logger.debug("Assigned id %s to row %d of '%s'", new_id, row, self.name)
        return new_id

    def backfill_ids(self) -> int:
        """Bulk repair: assign ids to every data row missing one."""
        assigned = 0
        for row, _ in self.sheet.get_all_rows():
            if not self.sheet.get_value(row, self.columns.id):
                self.ensure_id(row)
                assigned += 1
        return assigned

    def set_check_in(self, row: int, last_check_in: datetime, next_check_in: datetime) -> None:
        """Write both check-in cells together."""
        self.sheet.set_value(row, self.columns.last_check_in, last_check_in)
        self.sheet.set_value(row, self.columns.next_check_in, next_check_in)

    def set_completion_date(self, row: int, value: Optional[date]) -> None:
        self.sheet.set_value(row, self.columns.completion_date, value)

    def set_sync_enabled(self, row: int, enabled: bool) -> None:
        self.read(row)
        self.sheet.set_value(row, self.columns.calendar_sync, bool(enabled))

    def add_project(self, title: str, status: Optional[Status] = Status.NOT_STARTED,
                    completion_date: Optional[date] = None) -> ProjectRow:
        """Append a project row with its id assigned immediately."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Project title is required")
        values: List = [None] * self.columns.width
        values[self.columns.id - 1] = generate_project_id(self.config.id_prefix_for(self.name))
        values[self.columns.title - 1] = title
        values[self.columns.status - 1] = status.value if status else None
        values[self.columns.completion_date - 1] = completion_date
        values[self.columns.calendar_sync - 1] = False
        row = self.sheet.append_row(values)
        self.logger.info("Added project '%s' to '%s' (row %d)", title, self.name, row)
        return self.read(row)


def project_sheet(workbook: Workbook, sheet_name: str, config: TrackerConfig,
                  logger: Optional[logging.Logger] = None) -> ProjectSheet:
    return ProjectSheet(workbook.get_sheet(sheet_name), config, logger=logger)


def find_project(workbook: Workbook, config: TrackerConfig, project_id: str) -> Optional[ProjectRow]:
    """Search every tracked sheet for a project id."""
    for name in config.tracked_sheets:
        if workbook.has_sheet(name):
            found = project_sheet(workbook, name, config).find(project_id)
            if found:
                return found
    return None


def setup_workbook(workbook: Workbook, config: TrackerConfig,
                   logger: Optional[logging.Logger] = None) -> List[str]:
    """Create the audit and tasks sheets, prepare tracked sheets, backfill ids."""
    logger = logger or logging.getLogger(__name__)
    messages: List[str] = []

    if not workbook.has_sheet(config.audit_sheet):
        workbook.add_sheet(config.audit_sheet, AUDIT_HEADERS)
        messages.append(f"Created '{config.audit_sheet}' sheet")

    for name in config.tracked_sheets:
        if not workbook.has_sheet(name):
            messages.append(f"Sheet '{name}' not found - skipped")
            logger.warning("Tracked sheet '%s' not found", name)
            continue
        sheet = workbook.get_sheet(name)
        if not sheet.get_value(1, config.columns.calendar_sync):
            sheet.set_value(1, config.columns.calendar_sync, "Calendar Sync")
        assigned = ProjectSheet(sheet, config, logger=logger).backfill_ids()
        messages.append(f"{name} configured ({assigned} id(s) assigned)")

    if not workbook.has_sheet(config.tasks_sheet):
        workbook.add_sheet(config.tasks_sheet, TASK_HEADERS)
        messages.append(f"Created '{config.tasks_sheet}' sheet")

    return messages
