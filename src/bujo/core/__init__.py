"""Functional core - pure journal logic with no I/O."""

from .journal import BulletKind, BulletPoint, Day, Month, find_bullet_index_by_id
from .dates import InvalidInput, DatePrefix, days_in_month, parse_date_prefix, validate_day_input
from .bullets import apply_type_prefix, indent_bullet, new_draft, outdent_on_backspace
from .reducer import apply_event

__all__ = [
    # Journal
    "BulletKind",
    "BulletPoint",
    "Day",
    "Month",
    "find_bullet_index_by_id",
    # Dates
    "InvalidInput",
    "DatePrefix",
    "days_in_month",
    "parse_date_prefix",
    "validate_day_input",
    # Editing
    "apply_type_prefix",
    "indent_bullet",
    "new_draft",
    "outdent_on_backspace",
    # Reducer
    "apply_event",
]
