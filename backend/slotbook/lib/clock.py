"""
Wall-clock helpers for ``HH:mm`` schedule values.

Schedules are stored as zero-padded ``HH:mm`` strings; all comparisons and
arithmetic go through minute-of-day integers so "9:00" and "09:00" compare
equal and no window ever wraps past midnight.
"""
import re
from datetime import date, datetime, time
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")

MINUTES_PER_DAY = 24 * 60

# Index matches date.weekday(): Monday == 0
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def parse_hhmm(value: str) -> int:
    """
    Convert an ``HH:mm`` (or ``H:mm``) string to minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour clock time
    """
    match = HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:mm")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as zero-padded ``HH:mm``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute of day out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_hhmm(value: str) -> str:
    """Zero-pad a clock time, e.g. ``"9:05"`` -> ``"09:05"``."""
    return format_minutes(parse_hhmm(value))


def weekday_name(day: date) -> str:
    """Lowercase English weekday name, independent of locale."""
    return WEEKDAYS[day.weekday()]


def calendar_day(value: Union[date, datetime]) -> date:
    """Reduce a date or datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def minute_of_day(moment: Union[datetime, time]) -> int:
    return moment.hour * 60 + moment.minute


def resolve_zone(name: Optional[str]) -> ZoneInfo:
    """
    Look up an IANA timezone.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone {name!r}") from None


def to_local_wall_time(moment: datetime, zone_name: Optional[str]) -> datetime:
    """
    Express a booking instant as naive wall-clock time in the provider's zone.

    Naive datetimes are taken to already be provider-local.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(resolve_zone(zone_name)).replace(tzinfo=None)
