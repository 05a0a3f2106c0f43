"""
Calendar-day helpers for date query parameters.
"""
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Tuple

from visitlog.exceptions.base import ValidationError


def parse_day(value: Optional[str], clock: Callable[[], datetime] = datetime.now) -> date:
    """
    Parse a ``YYYY-MM-DD`` (or ISO datetime) query value; missing means today.

    Raises:
        ValidationError: The value is not a recognisable date
    """
    if not value:
        return clock().date()
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Invalid date format: {value}")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Local midnight of ``day`` and of the following day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)
