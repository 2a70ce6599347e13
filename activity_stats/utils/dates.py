# activity_stats/utils/dates.py
"""
Calendar helpers shared by the incremental and batch paths.

All timestamps in the stats tables are naive UTC, matching the ledger columns.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(value: Optional[datetime | date] = None) -> datetime:
    value = value or utcnow()
    return datetime(value.year, value.month, value.day)


def start_of_month(value: Optional[datetime] = None) -> datetime:
    value = value or utcnow()
    return datetime(value.year, value.month, 1)


def start_of_year(value: Optional[datetime] = None) -> datetime:
    value = value or utcnow()
    return datetime(value.year, 1, 1)


def day_window(value: Optional[datetime | date] = None) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) window for a calendar day."""
    start = start_of_day(value)
    return start, start + timedelta(days=1)


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    """Half-open [first of month, first of next month) window."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def previous_month(value: Optional[datetime] = None) -> tuple[int, int]:
    value = value or utcnow()
    if value.month == 1:
        return value.year - 1, 12
    return value.year, value.month - 1
