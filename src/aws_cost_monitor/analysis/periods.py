"""Calendar month helpers."""

import calendar
from datetime import date, timedelta


def month_start(day: date) -> date:
    return day.replace(day=1)


def previous_month_start(day: date) -> date:
    return month_start(month_start(day) - timedelta(days=1))


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_to_date_range(today: date) -> tuple[date, date]:
    """First of the month through today, end exclusive."""
    return month_start(today), today + timedelta(days=1)


def previous_month_range(today: date) -> tuple[date, date]:
    """The whole previous calendar month, end exclusive."""
    return previous_month_start(today), month_start(today)


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)
