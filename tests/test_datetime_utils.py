"""
Tests for datetime utilities and the clinic holiday calendar.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from vet_scheduling.utils.datetime_utils import (
    add_minutes,
    calculate_easter,
    ensure_aware,
    format_12_hour,
    format_24_hour,
    get_clinic_holidays,
    get_holidays_for_range,
    is_holiday,
    localize,
    minute_difference,
    parse_clock_time,
)


class TestClockTime:
    """Test time parsing, formatting and arithmetic."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("01:30 PM", time(13, 30)),
            ("09:00 am", time(9, 0)),
            ("12:00 PM", time(12, 0)),
            ("12:00 AM", time(0, 0)),
            ("13:30", time(13, 30)),
            (" 08:15 ", time(8, 15)),
            ("10:00:45", time(10, 0)),
        ],
    )
    def test_parse_clock_time(self, value, expected):
        """Test 12-hour and 24-hour forms parse to minute precision."""
        assert parse_clock_time(value) == expected

    def test_parse_time_object(self):
        """Test an existing time is truncated to the minute."""
        assert parse_clock_time(time(10, 5, 30, 500)) == time(10, 5)

    @pytest.mark.parametrize("value", ["", "noon", "25:00", "13:00 PM"])
    def test_parse_invalid(self, value):
        """Test malformed strings raise ValueError."""
        with pytest.raises(ValueError, match="Invalid time"):
            parse_clock_time(value)

    def test_formats(self):
        """Test the display and storage forms."""
        assert format_12_hour(time(13, 0)) == "01:00 PM"
        assert format_12_hour(time(9, 30)) == "09:30 AM"
        assert format_24_hour(time(13, 0)) == "13:00"

    def test_minute_difference_is_symmetric(self):
        """Test the difference ignores order."""
        assert minute_difference(time(10, 0), time(10, 10)) == 10
        assert minute_difference(time(10, 10), time(10, 0)) == 10

    def test_add_minutes(self):
        """Test shifting within the day and past midnight."""
        assert add_minutes(time(9, 45), 30) == time(10, 15)
        assert add_minutes(time(23, 45), 15) is None
        assert add_minutes(time(0, 10), -15) is None


class TestTimezones:
    """Test timezone helpers."""

    def test_localize(self):
        """Test combining a date and time in a timezone."""
        result = localize(date(2025, 6, 1), time(9, 0), "Asia/Manila")

        assert result.tzinfo == ZoneInfo("Asia/Manila")
        assert result.utcoffset().total_seconds() == 8 * 3600

    def test_ensure_aware(self):
        """Test naive datetimes get the timezone and aware ones pass through."""
        naive = datetime(2025, 6, 1, 9, 0)
        aware = datetime(2025, 6, 1, 9, 0, tzinfo=ZoneInfo("UTC"))

        assert ensure_aware(naive, "Asia/Manila").tzinfo == ZoneInfo("Asia/Manila")
        assert ensure_aware(aware, "Asia/Manila") is aware


class TestHolidays:
    """Test the clinic holiday calendar."""

    @pytest.mark.parametrize(
        "year,expected",
        [
            (2024, date(2024, 3, 31)),
            (2025, date(2025, 4, 20)),
            (2026, date(2026, 4, 5)),
        ],
    )
    def test_calculate_easter(self, year, expected):
        """Test Easter Sunday for known years."""
        assert calculate_easter(year) == expected

    def test_holy_week(self):
        """Test the Easter-relative holidays for 2025."""
        holidays = get_clinic_holidays(2025)

        assert date(2025, 4, 17) in holidays  # Maundy Thursday
        assert date(2025, 4, 18) in holidays  # Good Friday
        assert date(2025, 4, 19) in holidays  # Black Saturday
        assert date(2025, 4, 20) not in holidays

    def test_fixed_holidays(self):
        """Test fixed dates are listed, sorted and unique."""
        holidays = get_clinic_holidays(2025)

        assert date(2025, 1, 1) in holidays
        assert date(2025, 12, 25) in holidays
        assert holidays == sorted(set(holidays))

    def test_is_holiday(self):
        """Test single-day lookups."""
        assert is_holiday(date(2025, 6, 12))
        assert not is_holiday(date(2025, 6, 1))

    def test_holidays_for_range(self):
        """Test multi-year ranges."""
        holidays = get_holidays_for_range(2024, 2025)

        assert date(2024, 12, 25) in holidays
        assert date(2025, 12, 25) in holidays
        with pytest.raises(ValueError):
            get_holidays_for_range(2026, 2025)
