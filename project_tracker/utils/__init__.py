"""
Utility functions for project-tracker.
"""

from .io import safe_read_json, safe_write_json
from .date import (
    parse_date, format_sheet_date, coerce_date, coerce_datetime,
    parse_due_input, to_iso_instant
)

__all__ = [
    # I/O utilities
    'safe_read_json',
    'safe_write_json',
    # Date utilities
    'parse_date',
    'format_sheet_date',
    'coerce_date',
    'coerce_datetime',
    'parse_due_input',
    'to_iso_instant',
]
