"""
DateTime utilities for clinic scheduling.

This module provides clock-time parsing and formatting for slot strings,
timezone-aware "now" helpers, minute arithmetic on times of day, and the
clinic holiday calendar.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

TWELVE_HOUR_FORMAT = "%I:%M %p"
TWENTY_FOUR_HOUR_FORMAT = "%H:%M"


def parse_clock_time(value: Union[str, time]) -> time:
    """
    Parse a time of day in 12-hour (``"01:30 PM"``) or 24-hour (``"13:30"``) form.

    Args:
        value: Time string or an existing ``time`` (returned unchanged)

    Returns:
        Parsed time with seconds and microseconds dropped

    Raises:
        ValueError: If the string matches neither format
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    text = value.strip().upper()
    for fmt in (TWELVE_HOUR_FORMAT, TWENTY_FOUR_HOUR_FORMAT, "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time().replace(second=0)
        except ValueError:
            continue

    raise ValueError(f"Invalid time '{value}'. Expected 'hh:mm AM' or 'HH:MM'")


def format_12_hour(value: time) -> str:
    """Format a time of day as the slot string shown to clients, e.g. ``01:00 PM``."""
    return value.strftime(TWELVE_HOUR_FORMAT)


def format_24_hour(value: time) -> str:
    """Format a time of day in storage form, e.g. ``13:00``."""
    return value.strftime(TWENTY_FOUR_HOUR_FORMAT)


def minutes_since_midnight(value: time) -> int:
    """Return the minute-of-day for a time."""
    return value.hour * 60 + value.minute


def minute_difference(first: time, second: time) -> int:
    """Absolute difference between two times of day, in whole minutes."""
    return abs(minutes_since_midnight(first) - minutes_since_midnight(second))


def add_minutes(value: time, minutes: int) -> Optional[time]:
    """
    Add minutes to a time of day.

    Returns:
        The shifted time, or None when the result would cross midnight
    """
    total = minutes_since_midnight(value) + minutes
    if total < 0 or total >= 24 * 60:
        return None
    return time(total // 60, total % 60)


def get_current_local(timezone: str = "UTC") -> datetime:
    """Get the current datetime in a specific timezone."""
    return datetime.now(ZoneInfo(timezone))


def localize(day: date, at: time, timezone: str = "UTC") -> datetime:
    """Combine a calendar day and a time of day into an aware datetime."""
    return datetime.combine(day, at, ZoneInfo(timezone))


def ensure_aware(value: datetime, timezone: str = "UTC") -> datetime:
    """Attach ``timezone`` to a naive datetime; aware datetimes pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(timezone))
    return value


# Holiday calendar


def calculate_easter(year: int) -> date:
    """
    Calculate Easter Sunday for a Gregorian year (anonymous Gregorian computus).

    Args:
        year: Calendar year

    Returns:
        Date of Easter Sunday
    """
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


# (month, day) pairs the clinic is closed every year.
FIXED_HOLIDAYS = [
    # Regular holidays
    (1, 1),  # New Year's Day
    (4, 9),  # Day of Valor
    (5, 1),  # Labor Day
    (6, 12),  # Independence Day
    (8, 30),  # National Heroes' Day
    (11, 30),  # Bonifacio Day
    (12, 25),  # Christmas Day
    (12, 30),  # Rizal Day
    # Special non-working days
    (1, 9),  # Clinic seminar day
    (2, 25),  # People Power Revolution Anniversary
    (4, 10),  # Eid'l Fitr (approximate)
    (6, 17),  # Eid'l Adha (approximate)
    (8, 21),  # Ninoy Aquino Day
    (11, 1),  # All Saints' Day
    (12, 8),  # Feast of the Immaculate Conception
    (12, 24),  # Christmas Eve
    (12, 31),  # New Year's Eve
]


def get_clinic_holidays(year: int) -> List[date]:
    """
    Get the sorted list of holidays the clinic observes in a year.

    Includes the fixed holidays plus Maundy Thursday, Good Friday and
    Black Saturday, which move with Easter.

    Args:
        year: Calendar year

    Returns:
        Sorted, de-duplicated list of holiday dates
    """
    holidays = {date(year, month, day) for month, day in FIXED_HOLIDAYS}

    easter = calculate_easter(year)
    holidays.add(easter - timedelta(days=3))  # Maundy Thursday
    holidays.add(easter - timedelta(days=2))  # Good Friday
    holidays.add(easter - timedelta(days=1))  # Black Saturday

    return sorted(holidays)


def get_holidays_for_range(start_year: int, end_year: int) -> List[date]:
    """Get holidays for every year from ``start_year`` to ``end_year`` inclusive."""
    if start_year > end_year:
        raise ValueError("start_year cannot be after end_year")

    holidays: List[date] = []
    for year in range(start_year, end_year + 1):
        holidays.extend(get_clinic_holidays(year))
    return holidays


def is_holiday(day: date) -> bool:
    """Check whether the clinic is closed for a holiday on ``day``."""
    return day in get_clinic_holidays(day.year)
