"""Date manipulation utilities"""

import calendar
from datetime import date, datetime


def subtract_months(from_date: date, months: int) -> date:
    """
    Move a date back by whole calendar months.

    The day of month is kept where possible and clamped to the last day of
    the target month otherwise (2024-05-31 minus 3 months -> 2024-02-29).
    """
    month_index = from_date.year * 12 + (from_date.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def month_key(moment: datetime | date) -> str:
    """Calendar month label in YYYY-MM format"""
    return f"{moment.year:04d}-{moment.month:02d}"


def to_date(moment: datetime | date) -> date:
    """Collapse a timestamp to its calendar date"""
    if isinstance(moment, datetime):
        return moment.date()
    return moment


def in_window(day: date, start: date, end: date) -> bool:
    """Check whether a date falls in [start, end], both ends inclusive"""
    return start <= day <= end
