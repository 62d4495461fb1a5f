"""
Slot generation and the per-slot constraint filters.

Everything in this module is a pure function of the scheduling configuration
and the data passed in; nothing here touches the database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from ..utils.config import SchedulingConfig
from ..utils.datetime_utils import (
    add_minutes,
    ensure_aware,
    format_12_hour,
    localize,
    minute_difference,
)


def generate_time_slots(config: SchedulingConfig) -> List[time]:
    """
    Generate every candidate slot for a working day.

    Slots start at ``working_hours_start`` and step by
    ``slot_duration_minutes``; the last one is strictly before
    ``working_hours_end``.
    """
    slots: List[time] = []
    current: Optional[time] = config.working_hours_start
    while current is not None and current < config.working_hours_end:
        slots.append(current)
        current = add_minutes(current, config.slot_duration_minutes)
    return slots


def is_within_working_hours(slot: time, config: SchedulingConfig) -> bool:
    return config.working_hours_start <= slot < config.working_hours_end


def is_during_lunch_break(slot: time, config: SchedulingConfig) -> bool:
    return config.lunch_break_start <= slot < config.lunch_break_end


def is_already_booked(slot: time, booked_times: Iterable[time]) -> bool:
    return slot in set(booked_times)


def violates_buffer_time(
    slot: time, booked_times: Iterable[time], config: SchedulingConfig
) -> bool:
    """
    Check if ``slot`` is closer than the buffer to any booked time.

    A gap of exactly ``buffer_time_minutes`` is allowed.
    """
    return any(
        minute_difference(slot, booked) < config.buffer_time_minutes
        for booked in booked_times
    )


def has_daily_capacity(current_count: int, limit: int) -> bool:
    """Check if a count leaves room for one more appointment (strict ``<``)."""
    return current_count < limit


def meets_minimum_notice(
    day: date, slot: time, now: datetime, config: SchedulingConfig
) -> bool:
    """Check if ``day`` at ``slot`` is at least the minimum notice after ``now``."""
    proposed = localize(day, slot, config.timezone)
    earliest = ensure_aware(now, config.timezone) + timedelta(
        hours=config.minimum_notice_hours
    )
    return proposed >= earliest


@dataclass
class AvailableSlots:
    """Slots a client can pick for a date, in 12-hour display form."""

    available_times: List[str] = field(default_factory=list)
    disabled_times: List[str] = field(default_factory=list)
    is_date_disabled: bool = False
    message: Optional[str] = None


def compute_available_slots(
    config: SchedulingConfig,
    booked_times: Iterable[time],
    daily_count: int,
    date_unavailable_message: Optional[str] = None,
) -> AvailableSlots:
    """
    List the slots still open on a day.

    Candidates from ``generate_time_slots`` pass through the working hours,
    lunch break, already-booked and buffer filters, then the daily cap. The
    cap here is the type-agnostic ``daily_count`` against
    ``max_appointments_per_day``; the per-type limits are only enforced when
    a booking is validated.

    Args:
        config: Scheduling configuration
        booked_times: Times of non-canceled appointments on the day
        daily_count: Number of non-canceled appointments on the day
        date_unavailable_message: If set, the day is closed and no slots
            are offered

    Returns:
        AvailableSlots with available and already-booked times
    """
    if date_unavailable_message:
        return AvailableSlots(is_date_disabled=True, message=date_unavailable_message)

    booked = sorted(set(booked_times))
    available: List[str] = []
    for slot in generate_time_slots(config):
        if not is_within_working_hours(slot, config):
            continue
        if is_during_lunch_break(slot, config):
            continue
        if is_already_booked(slot, booked):
            continue
        if violates_buffer_time(slot, booked, config):
            continue
        if not has_daily_capacity(daily_count, config.max_appointments_per_day):
            continue
        available.append(format_12_hour(slot))

    return AvailableSlots(
        available_times=available,
        disabled_times=[format_12_hour(slot) for slot in booked],
    )
