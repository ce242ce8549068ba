"""On-edit handling: audit logging, id backfill and derived check-in dates."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional
import logging

from ..core.config import TrackerConfig
from ..sheets.grid import Workbook
from ..sheets.projects import ProjectSheet
from ..utils.date import parse_date
from .formatter import format_value, normalize_edit_values
from .log import AuditLog


class ColumnReaction(Enum):
    """What an edit to a column triggers."""

    IGNORE = "ignore"
    LOG = "log"
    CASCADE = "cascade"


@dataclass
class EditEvent:
    """A single-cell edit as delivered by the host."""

    sheet_name: str
    row: int
    column: int
    old_value: Any
    new_value: Any
    actor: Optional[str] = None


@dataclass
class EditOutcome:
    """What the reconciler did with an edit."""

    logged: bool = False
    assigned_id: Optional[str] = None
    cascaded: bool = False
    skipped_reason: Optional[str] = None
    error: Optional[str] = None


class EditReconciler:
    """Turns edit events into audit entries and cascaded field updates."""

    def __init__(self, workbook: Workbook, config: TrackerConfig,
                 audit_log: Optional[AuditLog] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 logger: Optional[logging.Logger] = None):
        self.workbook = workbook
        self.config = config
        self.clock = clock or datetime.now
        self.logger = logger or logging.getLogger(__name__)
        self.audit_log = audit_log or AuditLog(workbook, config, clock=self.clock, logger=self.logger)

    def reaction_for(self, column: int) -> ColumnReaction:
        name = self.config.columns.name_for(column)
        if name is None:
            return ColumnReaction.LOG
        return ColumnReaction(self.config.column_reactions.get(name, ColumnReaction.LOG.value))

    def handle(self, event: EditEvent) -> EditOutcome:
        """Process one edit. Never raises."""
        try:
            return self._handle(event)
        except Exception as e:
            self.logger.exception("Edit handler failed for %s!R%dC%d", event.sheet_name, event.row, event.column)
            return EditOutcome(error=str(e))

    def _handle(self, event: EditEvent) -> EditOutcome:
        if not self.config.is_tracked(event.sheet_name):
            return EditOutcome(skipped_reason="untracked sheet")
        if event.row <= 1:
            return EditOutcome(skipped_reason="header row")
        reaction = self.reaction_for(event.column)
        if reaction is ColumnReaction.IGNORE:
            return EditOutcome(skipped_reason="ignored column")

        old_value, new_value = normalize_edit_values(event.old_value, event.new_value)
        if old_value == new_value:
            return EditOutcome(skipped_reason="no change")

        outcome = EditOutcome()
        projects = ProjectSheet(self.workbook.get_sheet(event.sheet_name), self.config, logger=self.logger)
        sheet = projects.sheet

        project_id = "unknown"
        try:
            existing = sheet.get_value(event.row, self.config.columns.id)
            project_id = projects.ensure_id(event.row)
            if not existing:
                outcome.assigned_id = project_id
        except Exception as e:
            self.logger.warning("Could not resolve id for row %d of '%s': %s", event.row, event.sheet_name, e)

        project_title = "unknown"
        field_name = f"Column {event.column}"
        try:
            project_title = str(sheet.get_value(event.row, self.config.columns.title) or "")
            field_name = sheet.header(event.column)
        except Exception as e:
            self.logger.warning("Could not resolve metadata for row %d of '%s': %s", event.row, event.sheet_name, e)

        actor = event.actor or self.config.current_actor()
        entry = self.audit_log.record(
            project_id=project_id,
            project_title=project_title,
            sheet_name=event.sheet_name,
            row=event.row,
            column=event.column,
            field_name=field_name,
            old_value=format_value(old_value, event.column, self.config.date_columns),
            new_value=format_value(new_value, event.column, self.config.date_columns),
            actor=actor,
        )
        outcome.logged = entry is not None

        if reaction is ColumnReaction.CASCADE:
            now = self.clock()
            next_check_in = now + timedelta(days=self.config.default_next_checkin_days)
            projects.set_check_in(event.row, now, next_check_in)
            outcome.cascaded = True
            self.logger.info(
                "Check-in for %s moved to %s", project_id, next_check_in.strftime("%m/%d/%Y")
            )

        return outcome


def apply_edit(reconciler: EditReconciler, sheet_name: str, row: int, column: int,
               value: Any, actor: Optional[str] = None) -> EditOutcome:
    """Write a cell and run the edit handler, the way the host trigger would."""
    sheet = reconciler.workbook.get_sheet(sheet_name)
    if isinstance(value, str) and column in reconciler.config.date_columns:
        value = parse_date(value) or value
    old_value = sheet.get_value(row, column)
    sheet.set_value(row, column, value)
    return reconciler.handle(EditEvent(sheet_name, row, column, old_value, value, actor=actor))
