"""Timezone helpers."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime loaded from the database to aware UTC.

    Some drivers hand back naive values for timezone-aware columns;
    those are treated as already being UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Days in target month
    if month == 12:
        next_month_start = datetime(year + 1, 1, 1, tzinfo=value.tzinfo)
    else:
        next_month_start = datetime(year, month + 1, 1, tzinfo=value.tzinfo)
    last_day = (next_month_start - datetime(year, month, 1, tzinfo=value.tzinfo)).days
    return value.replace(year=year, month=month, day=min(value.day, last_day))
