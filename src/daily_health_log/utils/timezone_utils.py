"""
Calendar day and timezone utilities.

A day key is a plain ``date`` read as local midnight in the configured
timezone. Everything here is a pure function over dates and datetimes.
"""

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta

import pytz
from dateutil import parser


def make_timezone_aware(
    dt: datetime, timezone_str: str = "UTC", assume_local: bool = False
) -> datetime:
    """
    Make a datetime object timezone-aware.

    Args:
        dt: Datetime object (may be naive or aware).
        timezone_str: Timezone string (e.g., "Europe/Bucharest").
        assume_local: If True and dt is naive, assume it's in timezone_str.
            Otherwise a naive dt is read as UTC.

    Returns:
        Timezone-aware datetime object in timezone_str.
    """
    tz = pytz.timezone(timezone_str)

    if dt.tzinfo is None:
        if assume_local:
            return tz.localize(dt)
        else:
            return pytz.utc.localize(dt).astimezone(tz)
    else:
        return dt.astimezone(tz)


def to_utc_naive(dt: datetime, timezone_str: str = "UTC") -> datetime:
    """
    Convert a datetime to naive UTC for storage.

    Naive input is assumed to be local time in timezone_str.
    """
    aware = make_timezone_aware(dt, timezone_str, assume_local=True)
    return aware.astimezone(pytz.utc).replace(tzinfo=None)


def parse_datetime(
    date_str: str, time_str: str | None = None, timezone_str: str = "UTC"
) -> datetime:
    """
    Parse date and optional time strings into timezone-aware datetime.

    Args:
        date_str: Date string (various formats supported).
        time_str: Optional time string.
        timezone_str: Timezone to assign to the parsed datetime if it has none.

    Returns:
        Timezone-aware datetime object.
    """
    if time_str:
        combined = f"{date_str} {time_str}"
    else:
        combined = date_str

    dt = parser.parse(combined)

    return make_timezone_aware(dt, timezone_str, assume_local=True)


def day_key(timestamp: datetime, timezone_str: str = "UTC") -> date:
    """
    Normalize a timestamp to the calendar day it falls on locally.

    Naive timestamps are taken as local time.
    """
    return make_timezone_aware(timestamp, timezone_str, assume_local=True).date()


def start_of_day(day: date, timezone_str: str = "UTC") -> datetime:
    """Return local midnight of the given day as an aware datetime."""
    tz = pytz.timezone(timezone_str)
    return tz.normalize(tz.localize(datetime.combine(day, time.min)))


def next_day(day: date) -> date:
    """Return the calendar day after the given one."""
    return day + timedelta(days=1)


def day_bounds(day: date, timezone_str: str = "UTC") -> tuple[datetime, datetime]:
    """
    Compute the half-open interval covering one local calendar day.

    Args:
        day: Day key.
        timezone_str: Local timezone.

    Returns:
        Tuple of (start, end) where end is the start of the next day.
    """
    return start_of_day(day, timezone_str), start_of_day(next_day(day), timezone_str)


def sleep_window(
    day: date,
    timezone_str: str = "UTC",
    start_hour: int = 20,
    end_hour: int = 12,
) -> tuple[datetime, datetime]:
    """
    Compute the night window attributed to a day.

    The window opens at start_hour on the previous evening and closes at
    end_hour on the day itself: [day-1 20:00, day 12:00) by default.
    """
    tz = pytz.timezone(timezone_str)
    start = tz.localize(datetime.combine(day - timedelta(days=1), time(hour=start_hour)))
    end = tz.localize(datetime.combine(day, time(hour=end_hour)))
    return tz.normalize(start), tz.normalize(end)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    day = start
    while day <= end:
        yield day
        day = next_day(day)


def today(timezone_str: str = "UTC") -> date:
    """Return the current local day key."""
    return now_local(timezone_str).date()


def now_local(timezone_str: str = "UTC") -> datetime:
    """Return the current time as an aware datetime in timezone_str."""
    return datetime.now(pytz.timezone(timezone_str))
