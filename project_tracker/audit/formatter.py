"""Normalization of raw cell values into audit-log strings."""

from datetime import date, datetime, timezone
from numbers import Real
from typing import Any, Iterable, Tuple

EMPTY = "[Empty]"
INITIAL_VALUE = "[Initial value]"
CLEARED = "[Cleared]"

# Spreadsheet date serials counted from 1899-12-30; 25569 is 1970-01-01.
SERIAL_EPOCH_OFFSET = 25569
SERIAL_MIN = 40000
SERIAL_MAX = 60000
AUDIT_DATE_FORMAT = "%m/%d/%Y"


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def is_date_serial(value: Any) -> bool:
    """True for numbers inside the range a spreadsheet uses for modern dates."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return SERIAL_MIN < value < SERIAL_MAX


def serial_to_datetime(serial: float) -> datetime:
    millis = (serial - SERIAL_EPOCH_OFFSET) * 86400 * 1000
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def format_value(value: Any, column: int, date_columns: Iterable[int]) -> str:
    """
    Render a cell value for the audit log.

    Dates in date columns become MM/DD/YYYY, legacy date serials in date
    columns are converted first, absent values become ``[Empty]`` and
    everything else goes through ``str``. Strings are never re-interpreted,
    so formatting is idempotent.
    """
    if _is_absent(value):
        return EMPTY

    if column in set(date_columns):
        if isinstance(value, (datetime, date)):
            return value.strftime(AUDIT_DATE_FORMAT)
        if is_date_serial(value):
            return serial_to_datetime(value).strftime(AUDIT_DATE_FORMAT)

    return str(value)


def normalize_edit_values(old_value: Any, new_value: Any) -> Tuple[Any, Any]:
    """Replace an absent old value and an absent new value with their sentinels."""
    old = INITIAL_VALUE if _is_absent(old_value) else old_value
    new = CLEARED if _is_absent(new_value) else new_value
    return old, new
