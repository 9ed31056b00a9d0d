"""
Timestamp helpers.

All simulation timestamps are integer milliseconds since the Unix epoch (UTC),
with ``0`` doubling as the "not yet resolved" sentinel for condition stops.
"""

from datetime import date, datetime, timedelta, timezone
import typing

import pandas as pd

_MILLIS_PER_DAY = 24 * 60 * 60 * 1000


def days_to_millis(days: int) -> int:
    return int(days) * _MILLIS_PER_DAY


def to_millis(value: typing.Any) -> int:
    """
    Convert a date-like value ('YYYY-MM-DD', ISO timestamp, date, datetime)
    into epoch milliseconds. Naive values are treated as UTC.
    Raises ValueError when the value cannot be parsed.
    """
    if isinstance(value, str) and not value.strip():
        raise ValueError("empty date value")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot parse date {value!r}") from e
    if pd.isna(ts):
        raise ValueError(f"Cannot parse date {value!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.value // 1_000_000)


def to_date(millis: int) -> date:
    return (datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=millis)).date()


def get_year(millis: int) -> int:
    """Calendar year (UTC) of the given timestamp."""
    return to_date(millis).year


def years_between(start_millis: int, end_millis: int) -> int:
    """
    Whole calendar years elapsed from `start_millis` to `end_millis`,
    counting a year only once its anniversary has been reached.
    """
    start = to_date(start_millis)
    end = to_date(end_millis)
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years
