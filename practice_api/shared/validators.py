"""Shared validation utilities"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_time(value: Union[str, time, None]) -> Optional[time]:
    """
    Parse a time-of-day in 24h ``HH:MM`` or 12h ``HH:MM AM`` format.

    Returns None when the value is empty or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    raw = value.strip()
    if not raw:
        return None

    match = TIME_PATTERN.match(raw)
    if match:
        return time(int(match.group(1)), int(match.group(2)))

    try:
        return datetime.strptime(raw.upper(), "%I:%M %p").time()
    except ValueError:
        return None


def validate_time_hhmm(value: Optional[str], label: str = "Time") -> Optional[str]:
    """
    Validate and normalize a time string to zero-padded ``HH:MM``.

    Raises:
        ValueError: If the value is not a valid time
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    parsed = parse_time(value)
    if parsed is None:
        raise ValueError(f"{label} must be in HH:mm format (24-hour)")
    return format_time(parsed)


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (or an ISO datetime) into a date"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = value.strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def time_to_minutes(value: time) -> int:
    """Minutes since midnight"""
    return value.hour * 60 + value.minute


def add_minutes(start: time, minutes: int) -> Optional[time]:
    """
    Add minutes to a time-of-day.

    Returns None when the result would reach or cross midnight.
    """
    anchor = datetime.combine(date.min, start)
    end = anchor + timedelta(minutes=minutes)
    if end.date() != anchor.date():
        return None
    return end.time()
