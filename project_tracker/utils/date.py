"""
Date handling for sheet cells, user input and provider payloads.

Sheets show dates as ``MM/DD/YYYY``; config files and task payloads use ISO.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

SHEET_DATE_FORMAT = '%m/%d/%Y'


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse ``MM/DD/YYYY``, ``YYYY-MM-DD`` or an ISO timestamp into a date.

    The time and offset of a timestamp are discarded. Returns None for
    anything else.
    """
    text = (date_str or "").strip()
    if not text:
        return None

    if '/' in text:
        fmt = SHEET_DATE_FORMAT
    else:
        text = text.partition('T')[0]
        fmt = '%Y-%m-%d'
    try:
        return datetime.strptime(text, fmt).date()
    except ValueError:
        return None


def format_sheet_date(d: Optional[date]) -> str:
    """Format a date the way the tracked sheets display it."""
    if not d:
        return ""
    return d.strftime(SHEET_DATE_FORMAT)


def coerce_date(value: Any) -> Optional[date]:
    """Best-effort conversion of a cell value to a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date(value)
    return None


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a cell value to a datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            parsed = parse_date(value)
            if parsed:
                return datetime.combine(parsed, datetime.min.time())
    return None


def parse_due_input(text: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """
    Parse a due date as typed by a user.

    ``+N`` means N days from today; anything else goes through parse_date.
    Blank or unparseable input means no due date.
    """
    text = (text or "").strip()
    if not text:
        return None
    today = today or date.today()
    if text.startswith('+'):
        try:
            days = int(text[1:])
        except ValueError:
            return None
        return today + timedelta(days=days) if days > 0 else None
    return parse_date(text)


def to_iso_instant(value: Optional[date]) -> Optional[str]:
    """Render a date or datetime as an ISO-8601 UTC instant (``...Z``)."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.000Z')
