"""
Clock and calendar helpers for trade and subscription terms.

All model columns use timezone-naive datetimes (DateTime(timezone=False)) holding UTC.
"""

import calendar
import math
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def ensure_naive_datetime(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to the naive-UTC form stored in every column.

    Args:
        dt: aware or naive datetime (naive is assumed to be UTC already)

    Returns:
        Naive UTC datetime, or None
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        utc_dt = dt.astimezone(timezone.utc)
        return utc_dt.replace(tzinfo=None)

    return dt


def get_naive_utc_now() -> datetime:
    """
    Current UTC time without tzinfo.

    This is the one clock used for every start/end date and expiry comparison.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(dt: datetime, months: int) -> datetime:
    """
    Calendar-month arithmetic, clamping the day to the end of the target month.

    Example:
        >>> add_months(datetime(2024, 1, 31), 1)
        datetime.datetime(2024, 2, 29, 0, 0)
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def remaining_days(end: datetime, now: Optional[datetime] = None) -> int:
    """Whole days left until `end`, rounded up; never negative"""
    now = now or get_naive_utc_now()
    seconds = (ensure_naive_datetime(end) - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))
