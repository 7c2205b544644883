"""
Date helpers.

Expense dates travel as ISO "YYYY-MM-DD" strings; day aggregates are
keyed by the compact "YYYYMMDD" form.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def format_date(value: DateLike) -> str:
    """2025-01-05"""
    return to_date(value).isoformat()


def format_date_for_display(value: DateLike) -> str:
    """Jan 05, 2025"""
    return to_date(value).strftime("%b %d, %Y")


def format_date_key(value: DateLike) -> str:
    """20250105 - the day aggregate id."""
    return to_date(value).strftime("%Y%m%d")


def get_today_key() -> str:
    return format_date_key(date.today())


def get_date_ranges(value: Optional[DateLike] = None) -> dict[str, dict[str, date]]:
    """
    Inclusive day, week, month and year ranges containing a date.

    Weeks start on Sunday.
    """
    day = to_date(value) if value is not None else date.today()

    week_start = day - timedelta(days=(day.weekday() + 1) % 7)
    month_start = day.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)

    return {
        "day": {"start": day, "end": day},
        "week": {"start": week_start, "end": week_start + timedelta(days=6)},
        "month": {"start": month_start, "end": next_month - timedelta(days=1)},
        "year": {"start": day.replace(month=1, day=1), "end": day.replace(month=12, day=31)},
    }
