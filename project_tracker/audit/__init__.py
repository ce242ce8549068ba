"""Audit trail: value formatting, the ledger and the edit handler."""

from .formatter import format_value, normalize_edit_values
from .log import AuditLog
from .reconciler import ColumnReaction, EditEvent, EditOutcome, EditReconciler, apply_edit

__all__ = [
    'format_value',
    'normalize_edit_values',
    'AuditLog',
    'ColumnReaction',
    'EditEvent',
    'EditOutcome',
    'EditReconciler',
    'apply_edit',
]
