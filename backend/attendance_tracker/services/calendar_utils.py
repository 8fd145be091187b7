"""Date helpers shared by the schedule resolver, projector and sweeper.

Everything here works on local wall-clock dates. ``datetime.date`` carries no
time of day, so stepping one day at a time can never drift across a daylight
saving boundary.
"""
from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta

DateLike = date | datetime | str


def day_of_week_of(value: date) -> int:
    """Return 0 for Monday through 6 for Sunday."""
    return value.weekday()


def format_local_date(value: date | datetime) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date(value: DateLike | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def calculate_semester_end_date(start_date: date, weeks: int) -> str:
    """Last day of a semester of ``weeks`` weeks, inclusive of ``start_date``."""
    return format_local_date(start_date + timedelta(days=weeks * 7 - 1))


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
