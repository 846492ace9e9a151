"""
Datetime utilities for calendar-date handling across the application.

The scheduling logic never reads the wall clock itself: "today" is always
passed in. ``utc_now`` and ``local_today`` exist for the edges that supply it.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Union
from zoneinfo import ZoneInfo

from utils.constants import DAYS_IN_WEEK

# Index matches date.weekday() (Monday is 0)
WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def local_today(tz_name: str) -> date:
    """
    Get the current calendar date in the given IANA timezone.

    Args:
        tz_name: Timezone name, e.g. "Africa/Kigali"

    Returns:
        Today's date in that timezone
    """
    return utc_now().astimezone(ZoneInfo(tz_name)).date()


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    # Normalize 'Z' suffix to '+00:00'
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def parse_iso_date(value: str) -> date:
    """
    Parse an ISO date or date-time string, truncated to the calendar date.

    The date is taken as written: "2026-01-05T00:00:00.000Z" is 2026-01-05.

    Raises:
        ValueError: If the string is neither an ISO date nor date-time
    """
    value = value.strip()
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return parse_iso_datetime(value).date()
    except ValueError as e:
        raise ValueError(f"Invalid date string: {value}") from e


def to_iso_date(value: Union[date, datetime]) -> str:
    """Format a date (or the date part of a datetime) as YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def format_long_date(value: date) -> str:
    """Format a date for user messages, e.g. "Monday, January 5, 2026"."""
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


def next_date_for_weekday(day: Union[str, Enum], today: date) -> date:
    """
    Resolve a recurring weekday to the next concrete calendar date.

    If today already falls on ``day`` the date one week later is returned:
    bookings through a weekly schedule always get at least a day of lead time.

    Args:
        day: Weekday name ("Monday") or a Weekday enum member
        today: The reference date

    Returns:
        A date in (today, today + 7 days]

    Raises:
        ValueError: If day is not a weekday name
    """
    name = day.value if isinstance(day, Enum) else day
    if isinstance(today, datetime):
        today = today.date()
    try:
        target = WEEKDAY_NAMES.index(name)
    except ValueError as e:
        raise ValueError(f"Unknown day of week: {day!r}") from e

    days_until = (target - today.weekday()) % DAYS_IN_WEEK
    if days_until == 0:
        days_until = DAYS_IN_WEEK
    return today + timedelta(days=days_until)
