"""
Tests for HH:mm clock helpers and timezone conversion.
"""
from datetime import date, datetime, timezone

import pytest

from slotbook.lib.clock import (
    format_minutes,
    normalize_hhmm,
    parse_hhmm,
    resolve_zone,
    to_local_wall_time,
    weekday_name,
)


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    ("00:00", 0),
    ("09:00", 540),
    ("9:00", 540),
    ("16:30", 990),
    ("23:59", 1439),
])
def test_parse_hhmm(value, expected):
    assert parse_hhmm(value) == expected


@pytest.mark.unit
@pytest.mark.parametrize("value", ["24:00", "9", "09:60", "9am", "", None, "09:00:00"])
def test_parse_hhmm_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_hhmm(value)


@pytest.mark.unit
def test_normalize_pads_single_digit_hours():
    assert normalize_hhmm("9:05") == "09:05"
    assert normalize_hhmm("09:05") == "09:05"


@pytest.mark.unit
def test_minute_comparison_is_numeric_not_lexical():
    """'9:00' sorts after '10:00' as text but is earlier in the day."""
    assert "9:00" > "10:00"
    assert parse_hhmm("9:00") < parse_hhmm("10:00")


@pytest.mark.unit
def test_format_minutes_rejects_out_of_range():
    with pytest.raises(ValueError):
        format_minutes(24 * 60)


@pytest.mark.unit
def test_weekday_name():
    assert weekday_name(date(2025, 1, 10)) == "friday"
    assert weekday_name(date(2025, 6, 2)) == "monday"
    assert weekday_name(date(2025, 6, 8)) == "sunday"


@pytest.mark.unit
def test_resolve_zone_unknown():
    with pytest.raises(ValueError, match="Unknown timezone"):
        resolve_zone("Mars/Olympus_Mons")


@pytest.mark.unit
def test_to_local_wall_time_converts_aware_values():
    moment = datetime(2025, 1, 10, 3, 0, tzinfo=timezone.utc)
    assert to_local_wall_time(moment, "Asia/Dhaka") == datetime(2025, 1, 10, 9, 0)


@pytest.mark.unit
def test_to_local_wall_time_keeps_naive_values():
    moment = datetime(2025, 1, 10, 9, 0)
    assert to_local_wall_time(moment, "America/New_York") == moment
