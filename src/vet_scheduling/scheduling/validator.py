"""
Booking validator.

Checks a proposed booking against the clinic calendar, the time-of-day
constraints and the per-type daily limits. The validator only reads; the
caller writes the booking afterwards in the same transaction.

Order of checks (the first failing time check stops the rest):

0. date unavailable (disabled date or holiday)
1. minimum notice
2. working hours
3. lunch break
4. exact slot already booked
5. buffer time against the day's bookings
6. daily limit for every requested type, all reported together
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional, Sequence, Tuple

from ..models import AppointmentType
from ..utils.config import SchedulingConfig
from ..utils.datetime_utils import format_12_hour, get_current_local
from .calendar import ClinicCalendar
from .registry import AppointmentTypeRegistry, TypeRef
from .slots import (
    AvailableSlots,
    compute_available_slots,
    is_already_booked,
    is_during_lunch_break,
    is_within_working_hours,
    meets_minimum_notice,
    violates_buffer_time,
)
from .store import AppointmentStore
from .violations import BookingViolationCode, DailyLimitCheck, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass
class BookingAttempt:
    """One concrete slot request: a date, a time, the types, and how many pets."""

    appointment_date: date
    appointment_time: time
    type_refs: Sequence[TypeRef]
    pet_count: int = 1
    exclude_id: Optional[uuid.UUID] = None


class BookingValidator:
    """Validates booking attempts against configuration and stored bookings."""

    def __init__(
        self,
        config: SchedulingConfig,
        store: AppointmentStore,
        registry: AppointmentTypeRegistry,
        calendar: ClinicCalendar,
    ):
        self.config = config
        self.store = store
        self.registry = registry
        self.calendar = calendar

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or get_current_local(self.config.timezone)

    async def check_daily_limit(
        self,
        type_ref: TypeRef,
        day: date,
        exclude_id: Optional[uuid.UUID] = None,
        requested: int = 1,
    ) -> DailyLimitCheck:
        """
        Report the capacity of one appointment type on ``day``.

        An unknown type yields a check with ``limit=0`` that is never
        available.
        """
        appointment_type = await self.registry.find_by_id_or_name(type_ref)
        return await self._limit_check(
            type_ref, appointment_type, day, exclude_id, requested
        )

    async def _resolve_unique(
        self, type_refs: Sequence[TypeRef]
    ) -> List[Tuple[TypeRef, Optional[AppointmentType]]]:
        """Resolve refs in order, keeping the first ref for each type."""
        resolved = []
        seen = set()
        for type_ref in type_refs:
            appointment_type = await self.registry.find_by_id_or_name(type_ref)
            key = (
                appointment_type.id
                if appointment_type is not None
                else str(type_ref).strip().casefold()
            )
            if key in seen:
                continue
            seen.add(key)
            resolved.append((type_ref, appointment_type))
        return resolved

    async def _limit_check(
        self,
        type_ref: TypeRef,
        appointment_type: Optional[AppointmentType],
        day: date,
        exclude_id: Optional[uuid.UUID],
        requested: int,
    ) -> DailyLimitCheck:
        if appointment_type is None:
            return DailyLimitCheck(
                appointment_type=str(type_ref),
                type_id=None,
                current_count=0,
                limit=0,
                requested=requested,
            )

        current = await self.store.count_non_canceled(
            day, appointment_type.id, exclude_id
        )
        return DailyLimitCheck(
            appointment_type=appointment_type.name,
            type_id=appointment_type.id,
            current_count=current,
            limit=self.registry.daily_limit(appointment_type.name),
            requested=requested,
        )

    async def check_daily_limits(
        self,
        type_refs: Sequence[TypeRef],
        day: date,
        exclude_id: Optional[uuid.UUID] = None,
        requested: int = 1,
    ) -> ValidationOutcome:
        """
        Check every requested type and report each one that does not fit.

        ``requested`` is the number of new appointments of each type the
        booking would add (the number of pets).
        """
        outcome = ValidationOutcome()
        for type_ref, appointment_type in await self._resolve_unique(type_refs):
            check = await self._limit_check(
                type_ref, appointment_type, day, exclude_id, requested
            )
            outcome.limit_checks.append(check)

            if check.type_id is None:
                outcome.add(
                    BookingViolationCode.APPOINTMENT_TYPE_NOT_FOUND,
                    "appointment_type",
                    f"Appointment type '{check.appointment_type}' not found",
                    **check.to_dict(),
                )
            elif not check.available:
                outcome.add(
                    BookingViolationCode.DAILY_LIMIT_EXCEEDED,
                    "appointment_date",
                    f"{check.appointment_type} appointment limit reached. "
                    f"Current: {check.current_count}/{check.limit}",
                    **check.to_dict(),
                )
        return outcome

    async def validate_slot(
        self,
        day: date,
        at: time,
        now: Optional[datetime] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> ValidationOutcome:
        """
        Run checks 0 through 5 for one (date, time), stopping at the first failure.

        Args:
            day: Proposed date
            at: Proposed time of day
            now: Current time; defaults to now in the clinic timezone
            exclude_id: Appointment to ignore, e.g. the one being rescheduled
        """
        outcome = ValidationOutcome()
        display = format_12_hour(at)

        unavailable = await self.calendar.unavailable_reason(day)
        if unavailable:
            outcome.add(
                BookingViolationCode.DATE_UNAVAILABLE,
                "appointment_date",
                unavailable,
                date=day.isoformat(),
            )
            return outcome

        if not meets_minimum_notice(day, at, self._now(now), self.config):
            outcome.add(
                BookingViolationCode.INSUFFICIENT_NOTICE,
                "appointment_time",
                f"Appointments must be booked at least "
                f"{self.config.minimum_notice_hours} hours in advance.",
                minimum_notice_hours=self.config.minimum_notice_hours,
            )
            return outcome

        if not is_within_working_hours(at, self.config):
            outcome.add(
                BookingViolationCode.OUTSIDE_WORKING_HOURS,
                "appointment_time",
                "Appointments can only be booked during working hours.",
                time=display,
            )
            return outcome

        if is_during_lunch_break(at, self.config):
            outcome.add(
                BookingViolationCode.DURING_LUNCH_BREAK,
                "appointment_time",
                "Appointments cannot be booked during lunch break.",
                time=display,
            )
            return outcome

        booked = await self.store.times_booked(day, exclude_id)
        if is_already_booked(at, booked):
            outcome.add(
                BookingViolationCode.SLOT_ALREADY_BOOKED,
                "appointment_time",
                "This time slot is already booked.",
                time=display,
            )
            return outcome

        if violates_buffer_time(at, booked, self.config):
            outcome.add(
                BookingViolationCode.BUFFER_VIOLATION,
                "appointment_time",
                "This time slot violates the buffer time restriction.",
                time=display,
                buffer_time_minutes=self.config.buffer_time_minutes,
            )
        return outcome

    async def validate_booking(
        self, attempt: BookingAttempt, now: Optional[datetime] = None
    ) -> ValidationOutcome:
        """
        Run every check for a booking attempt.

        The daily limits run only when the slot itself is acceptable.
        """
        outcome = await self.validate_slot(
            attempt.appointment_date,
            attempt.appointment_time,
            now=now,
            exclude_id=attempt.exclude_id,
        )
        if not outcome.is_valid:
            return outcome

        outcome.extend(
            await self.check_daily_limits(
                attempt.type_refs,
                attempt.appointment_date,
                exclude_id=attempt.exclude_id,
                requested=attempt.pet_count,
            )
        )
        return outcome

    async def available_slots(self, day: date) -> AvailableSlots:
        """Open slots on ``day`` for display; see ``compute_available_slots``."""
        return compute_available_slots(
            self.config,
            booked_times=await self.store.times_booked(day),
            daily_count=await self.store.count_for_day(day),
            date_unavailable_message=await self.calendar.unavailable_reason(day),
        )

    async def limit_status(
        self, type_refs: Sequence[TypeRef], day: date
    ) -> List[DailyLimitCheck]:
        """Current capacity for each type on ``day``, without judging a request."""
        outcome = await self.check_daily_limits(type_refs, day)
        return outcome.limit_checks
