"""Datetime utilities for timezone-aware UTC timestamps and date parsing.

Usage:
    from src.utils.datetime_utils import utc_now, parse_date

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)

    # For user-entered dates ("2025-01-15" or a date/datetime object)
    purchase_date = parse_date("2025-01-15")
"""

from datetime import date, datetime, timezone
from typing import Union


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def parse_date(value: Union[str, date, datetime]) -> date:
    """Normalize a user-supplied date to a ``date``.

    Accepts ``date``/``datetime`` objects and ISO strings
    (``YYYY-MM-DD`` or a full ISO timestamp).

    Args:
        value: Date-like input

    Returns:
        The calendar date

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    raise ValueError(f"Unsupported date value: {value!r}")
