"""Append-only audit ledger stored in the audit sheet."""

from datetime import datetime
from typing import Callable, Iterator, List, Optional
import logging

from ..core.config import TrackerConfig
from ..core.exceptions import TrackerError
from ..core.models import AuditEntry
from ..sheets.grid import Workbook


class AuditLog:
    """Records field-level changes and answers newest-first history queries."""

    def __init__(self, workbook: Workbook, config: TrackerConfig,
                 clock: Optional[Callable[[], datetime]] = None,
                 logger: Optional[logging.Logger] = None):
        self.workbook = workbook
        self.config = config
        self.clock = clock or datetime.now
        self.logger = logger or logging.getLogger(__name__)

    def record(self, project_id: str, project_title: str, sheet_name: str,
               row: int, column: int, field_name: str, old_value: str,
               new_value: str, actor: str) -> Optional[AuditEntry]:
        """Append one entry. Never raises: an unavailable store drops the entry."""
        entry = AuditEntry(
            timestamp=self.clock(),
            project_id=project_id or "unknown",
            project_title=project_title or "",
            sheet_name=sheet_name,
            row=row,
            column=column,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            actor=actor or "unknown",
        )
        try:
            self.workbook.get_sheet(self.config.audit_sheet).append_row(entry.to_row())
        except (TrackerError, ValueError, OSError) as e:
            self.logger.error(
                "Audit entry dropped for %s/%s (%s -> %s): %s",
                entry.project_id, field_name, old_value, new_value, e
            )
            return None
        self.logger.debug("Audit: %s %s '%s' -> '%s'", entry.project_id, field_name, old_value, new_value)
        return entry

    def history(self, project_id: str, field_name: Optional[str] = None,
                limit: Optional[int] = None) -> Iterator[AuditEntry]:
        """
        Yield entries for a project newest first.

        Args:
            project_id: Project identifier to match
            field_name: Field to match; None matches every field
            limit: Stop after this many matches (defaults to history_limit)
        """
        if limit is None:
            limit = self.config.history_limit
        if limit <= 0 or not self.workbook.has_sheet(self.config.audit_sheet):
            return

        found = 0
        for _, values in self.workbook.get_sheet(self.config.audit_sheet).iter_rows_reversed():
            entry = AuditEntry.from_row(values)
            if entry.project_id != project_id:
                continue
            if field_name is not None and entry.field_name != field_name:
                continue
            yield entry
            found += 1
            if found >= limit:
                return

    def entries(self) -> List[AuditEntry]:
        """All entries oldest first."""
        if not self.workbook.has_sheet(self.config.audit_sheet):
            return []
        sheet = self.workbook.get_sheet(self.config.audit_sheet)
        return [AuditEntry.from_row(values) for _, values in sheet.get_all_rows()]
