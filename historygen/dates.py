"""UTC calendar day helpers.

All dates are plain ``datetime.date`` values representing UTC calendar days.
Day arithmetic is done on calendar dates only, so there is no local-time
shifting around daylight-saving transitions.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator

ONE_DAY = timedelta(days=1)


def to_utc_date(value: date | datetime | str) -> date:
    """Normalise a date, datetime or ISO string to its UTC calendar day.

    Naive datetimes are treated as UTC; aware ones are converted to UTC first.
    """
    if isinstance(value, str):
        cleaned = value.strip().replace("Z", "+00:00")
        try:
            value = datetime.fromisoformat(cleaned) if "T" in cleaned or " " in cleaned else date.fromisoformat(cleaned)
        except ValueError as e:
            raise ValueError(f"Invalid date format '{value}': {e}") from e
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return date(value.year, value.month, value.day)
    return value


def add_years(day: date, years: int) -> date:
    """Same month/day ``years`` later; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def end_date_for_years(start: date, years: int) -> date:
    """Last day of a span of ``years`` starting at ``start`` (inclusive)."""
    if years < 1:
        raise ValueError(f"years must be at least 1, got {years}")
    return add_years(start, years) - ONE_DAY


def generate_dates_between(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` through ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def generate_dates_for_years(start: date | datetime | str, years: int) -> Iterator[date]:
    """Yield one UTC calendar day per entry for ``years`` years from ``start``."""
    clean_start = to_utc_date(start)
    return generate_dates_between(clean_start, end_date_for_years(clean_start, years))


def days_between(start: date, end: date) -> int:
    return (end - start).days


def date_to_key(day: date) -> str:
    return day.isoformat()


def key_to_date(key: str) -> date:
    return date.fromisoformat(key)
