"""Row/column addressed grid storage standing in for the spreadsheet host."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging

from ..core.exceptions import NotFoundError, TrackerError
from ..utils.io import read_json, safe_write_json


def _encode_cell(value: Any) -> Any:
    """json ``default=`` hook tagging dates so they revive as typed cells."""
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    raise TypeError(f"Cell value of type {type(value).__name__} is not storable")


def _decode_cell(obj: Dict[str, Any]) -> Any:
    if "$datetime" in obj and len(obj) == 1:
        return datetime.fromisoformat(obj["$datetime"])
    if "$date" in obj and len(obj) == 1:
        return date.fromisoformat(obj["$date"])
    return obj


class Sheet:
    """A named grid. Row 1 holds headers; rows and columns are 1-based."""

    def __init__(self, name: str, rows: Optional[List[List[Any]]] = None):
        self.name = name
        self._rows: List[List[Any]] = [list(r) for r in (rows or [])]

    @property
    def last_row(self) -> int:
        return len(self._rows)

    @property
    def last_column(self) -> int:
        return max((len(r) for r in self._rows), default=0)

    def _check_row(self, row: int) -> None:
        if row < 1:
            raise ValueError(f"Row numbers start at 1, got {row}")

    def get_value(self, row: int, column: int) -> Any:
        self._check_row(row)
        if row > len(self._rows):
            return None
        values = self._rows[row - 1]
        if column < 1 or column > len(values):
            return None
        return values[column - 1]

    def set_value(self, row: int, column: int, value: Any) -> None:
        self._check_row(row)
        if column < 1:
            raise ValueError(f"Column numbers start at 1, got {column}")
        while len(self._rows) < row:
            self._rows.append([])
        values = self._rows[row - 1]
        if len(values) < column:
            values.extend([None] * (column - len(values)))
        values[column - 1] = value

    def set_range(self, row: int, column: int, values: List[Any]) -> None:
        """Write ``values`` left to right starting at (row, column)."""
        for offset, value in enumerate(values):
            self.set_value(row, column + offset, value)

    def header(self, column: int) -> str:
        value = self.get_value(1, column) if self._rows else None
        return str(value) if value not in (None, "") else f"Column {column}"

    def headers(self) -> List[Any]:
        return list(self._rows[0]) if self._rows else []

    def get_row(self, row: int) -> List[Any]:
        self._check_row(row)
        if row > len(self._rows):
            return []
        return list(self._rows[row - 1])

    def get_all_rows(self) -> Iterator[Tuple[int, List[Any]]]:
        """Yield ``(row_number, values)`` for every data row."""
        for index in range(1, len(self._rows)):
            yield index + 1, list(self._rows[index])

    def iter_rows_reversed(self) -> Iterator[Tuple[int, List[Any]]]:
        """Yield data rows newest (bottom) first."""
        for index in range(len(self._rows) - 1, 0, -1):
            yield index + 1, list(self._rows[index])

    def append_row(self, values: List[Any]) -> int:
        self._rows.append(list(values))
        return len(self._rows)

    def delete_rows(self, row_numbers: List[int]) -> int:
        targets = sorted({r for r in row_numbers if 1 < r <= len(self._rows)}, reverse=True)
        for row in targets:
            del self._rows[row - 1]
        return len(targets)

    def to_rows(self) -> List[List[Any]]:
        return [list(r) for r in self._rows]


class Workbook:
    """A collection of named sheets persisted as one JSON document."""

    def __init__(self, path: Optional[Path] = None, logger: Optional[logging.Logger] = None):
        self.path = Path(path) if path else None
        self.logger = logger or logging.getLogger(__name__)
        self._sheets: Dict[str, Sheet] = {}

    def has_sheet(self, name: str) -> bool:
        return name in self._sheets

    def get_sheet(self, name: str) -> Sheet:
        sheet = self._sheets.get(name)
        if sheet is None:
            raise NotFoundError(f"Sheet '{name}' not found")
        return sheet

    def add_sheet(self, name: str, headers: Optional[List[Any]] = None) -> Sheet:
        if name in self._sheets:
            return self._sheets[name]
        sheet = Sheet(name, [list(headers)] if headers else [])
        self._sheets[name] = sheet
        return sheet

    def sheet_names(self) -> List[str]:
        return list(self._sheets)

    @classmethod
    def load(cls, path: Path, logger: Optional[logging.Logger] = None) -> Workbook:
        """
        Load a workbook; a missing file gives an empty one.

        Raises:
            TrackerError: the file exists but cannot be read or parsed
        """
        workbook = cls(path, logger=logger)
        try:
            data = read_json(path, object_hook=_decode_cell)
        except (OSError, TimeoutError, ValueError) as e:
            workbook.logger.error("Workbook %s is unreadable: %s", path, e)
            raise TrackerError(f"Workbook {path} cannot be read ({e}); it was left untouched") from e
        data = data or {}
        sheets = data.get("sheets", {}) if isinstance(data, dict) else None
        if not isinstance(sheets, dict):
            raise TrackerError(f"Workbook {path} has no 'sheets' mapping; it was left untouched")
        for name, rows in sheets.items():
            workbook._sheets[name] = Sheet(name, rows)
        workbook.logger.debug("Loaded workbook %s with sheets %s", path, workbook.sheet_names())
        return workbook

    def save(self, path: Optional[Path] = None) -> None:
        target = Path(path) if path else self.path
        if target is None:
            raise TrackerError("Workbook has no path to save to")
        data = {"sheets": {name: sheet.to_rows() for name, sheet in self._sheets.items()}}
        if not safe_write_json(str(target), data, encoder=_encode_cell):
            raise TrackerError(f"Failed to save workbook to {target}")

    def snapshot(self, sheet_name: str, backup_dir: Path) -> Path:
        """Copy one sheet into a timestamped backup file and return its path."""
        sheet = self.get_sheet(sheet_name)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        safe_name = sheet_name.replace(" ", "_").replace("/", "_")
        target = Path(backup_dir) / f"{safe_name}-{stamp}.json"
        data = {"sheet": sheet_name, "rows": sheet.to_rows()}
        if not safe_write_json(str(target), data, encoder=_encode_cell):
            raise TrackerError(f"Failed to snapshot '{sheet_name}' to {target}")
        self.logger.info("Snapshot of '%s' written to %s", sheet_name, target)
        return target
