"""
Appointment booking service.

Entry point for the web layer. Each operation opens its own transaction,
re-reads everything it checks inside that transaction, and writes in the
same transaction, so capacity counts cannot go stale between the check and
the insert.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.session import SessionManager
from ..exceptions import BusinessRuleException
from ..models import Appointment, DisabledDate
from ..utils.config import SchedulingConfig
from .calendar import ClinicCalendar
from .composer import BookingComposer, BookingRequest
from .registry import AppointmentTypeRegistry, TypeRef
from .slots import AvailableSlots
from .store import AppointmentStore
from .validator import BookingAttempt, BookingValidator
from .violations import BookingViolationCode, DailyLimitCheck, ValidationOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BookingResult:
    """Outcome of a write operation: the validation result and what was saved."""

    outcome: ValidationOutcome
    appointments: List[Appointment] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.outcome.is_valid

    @property
    def appointment_ids(self) -> List[uuid.UUID]:
        return [appointment.id for appointment in self.appointments]

    def raise_if_invalid(self) -> "BookingResult":
        """Raise ``BookingRejectedException`` if rejected, else return self."""
        self.outcome.raise_if_invalid()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.is_success,
            "appointment_ids": [str(i) for i in self.appointment_ids],
            **self.outcome.to_dict(),
        }


@dataclass
class _Unit:
    """Collaborators bound to one session."""

    store: AppointmentStore
    registry: AppointmentTypeRegistry
    calendar: ClinicCalendar
    validator: BookingValidator


class AppointmentBookingService:
    """
    Books, moves and closes out appointments.

    Args:
        session_manager: Source of sessions and retried transactions
        config: Scheduling rules
        max_retries: Attempts after the first on serialization failures
        retry_delay: Initial backoff between attempts, in seconds
    """

    def __init__(
        self,
        session_manager: SessionManager,
        config: Optional[SchedulingConfig] = None,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ):
        self.session_manager = session_manager
        self.config = config or SchedulingConfig()
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def _unit(self, session: AsyncSession) -> _Unit:
        store = AppointmentStore(session)
        registry = AppointmentTypeRegistry(session, self.config)
        calendar = ClinicCalendar(session, self.config)
        return _Unit(
            store=store,
            registry=registry,
            calendar=calendar,
            validator=BookingValidator(self.config, store, registry, calendar),
        )

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        return await self.session_manager.execute_with_retry(
            operation,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            isolation_level=self.config.booking_isolation_level,
        )

    async def _read(self, operation: Callable[[_Unit], Awaitable[T]]) -> T:
        async with self.session_manager.get_session() as session:
            return await operation(self._unit(session))

    # Booking

    async def book(
        self, request: BookingRequest, now: Optional[datetime] = None
    ) -> BookingResult:
        """
        Validate and save a submission as one appointment per type.

        Returns:
            BookingResult; when rejected, nothing is written
        """

        async def operation(session: AsyncSession) -> BookingResult:
            unit = self._unit(session)
            await unit.store.lock_days([request.appointment_date])

            composition = await BookingComposer(unit.validator).compose(request, now)
            if not composition.is_valid:
                return BookingResult(composition.outcome)

            for appointment in composition.appointments:
                await unit.store.insert(appointment)
            return BookingResult(composition.outcome, composition.appointments)

        result = await self._run(operation)
        self._log_result("book", result, request.appointment_date)
        return result

    async def get_available_slots(self, day: date) -> AvailableSlots:
        """List open slots for ``day``."""
        return await self._read(lambda unit: unit.validator.available_slots(day))

    async def get_daily_limit_status(
        self, day: date, type_refs: Sequence[TypeRef]
    ) -> List[DailyLimitCheck]:
        """Current count, limit and remaining capacity for each type on ``day``."""
        return await self._read(lambda unit: unit.validator.limit_status(type_refs, day))

    async def validate(
        self, attempt: BookingAttempt, now: Optional[datetime] = None
    ) -> ValidationOutcome:
        """Dry-run the checks for a single slot request without writing anything."""
        return await self._read(
            lambda unit: unit.validator.validate_booking(attempt, now)
        )

    # Lifecycle

    async def approve(
        self,
        appointment_id: uuid.UUID,
        appointment_date: Optional[date] = None,
        appointment_time: Optional[time] = None,
    ) -> BookingResult:
        """
        Approve an appointment, optionally moving it.

        Moving to another date re-checks the daily limits there, with the
        appointment itself left out of the count.
        """

        async def operation(session: AsyncSession) -> BookingResult:
            unit = self._unit(session)
            appointment = await unit.store.get_or_raise(appointment_id, for_update=True)
            self._require(appointment.can_be_approved(), "approve", appointment)

            day = appointment_date or appointment.appointment_date
            at = appointment_time or appointment.appointment_time
            outcome = ValidationOutcome()
            if day != appointment.appointment_date:
                await unit.store.lock_days([day])
                outcome = await self._limits_for(unit, appointment, day)
                if not outcome.is_valid:
                    return BookingResult(outcome)

            if (day, at) != (appointment.appointment_date, appointment.appointment_time):
                await unit.store.update_date_time(appointment.id, day, at)
            appointment.approve()
            await session.flush()
            return BookingResult(outcome, [appointment])

        result = await self._run(operation)
        self._log_result("approve", result, appointment_date)
        return result

    async def reschedule(
        self,
        appointment_id: uuid.UUID,
        appointment_date: date,
        appointment_time: time,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BookingResult:
        """
        Client reschedule of a pending appointment.

        Runs the full booking validation at the new slot with the appointment
        left out of every count. The appointment stays pending.
        """

        async def operation(session: AsyncSession) -> BookingResult:
            unit = self._unit(session)
            appointment = await unit.store.get_or_raise(appointment_id, for_update=True)
            self._require(appointment.can_be_rescheduled(), "reschedule", appointment)
            await unit.store.lock_days([appointment_date])

            outcome = await unit.validator.validate_booking(
                BookingAttempt(
                    appointment_date=appointment_date,
                    appointment_time=appointment_time,
                    type_refs=self._type_refs(appointment),
                    pet_count=max(1, len(appointment.patient_ids)),
                    exclude_id=appointment.id,
                ),
                now=now,
            )
            if not outcome.is_valid:
                return BookingResult(outcome)

            appointment.reschedule(appointment_date, appointment_time, reason)
            await session.flush()
            return BookingResult(outcome, [appointment])

        result = await self._run(operation)
        self._log_result("reschedule", result, appointment_date)
        return result

    async def staff_reschedule(
        self,
        appointment_id: uuid.UUID,
        appointment_date: date,
        appointment_time: time,
        reason: str,
    ) -> BookingResult:
        """
        Staff reschedule of a pending appointment.

        Staff may pick any time; only the calendar and, when the date
        changes, the daily limits are checked.
        """

        async def operation(session: AsyncSession) -> BookingResult:
            unit = self._unit(session)
            appointment = await unit.store.get_or_raise(appointment_id, for_update=True)
            self._require(appointment.can_be_rescheduled(), "reschedule", appointment)

            outcome = ValidationOutcome()
            unavailable = await unit.calendar.unavailable_reason(appointment_date)
            if unavailable:
                outcome.add(
                    BookingViolationCode.DATE_UNAVAILABLE,
                    "appointment_date",
                    unavailable,
                    date=appointment_date.isoformat(),
                )
                return BookingResult(outcome)

            if appointment_date != appointment.appointment_date:
                await unit.store.lock_days([appointment_date])
                outcome = await self._limits_for(unit, appointment, appointment_date)
                if not outcome.is_valid:
                    return BookingResult(outcome)

            appointment.reschedule(appointment_date, appointment_time, reason)
            await session.flush()
            return BookingResult(outcome, [appointment])

        result = await self._run(operation)
        self._log_result("staff_reschedule", result, appointment_date)
        return result

    async def cancel(
        self, appointment_id: uuid.UUID, reason: Optional[str] = None
    ) -> Appointment:
        """Cancel an appointment; it stops counting toward any limit."""

        async def operation(session: AsyncSession) -> Appointment:
            store = AppointmentStore(session)
            appointment = await store.get_or_raise(appointment_id, for_update=True)
            self._require(appointment.can_be_cancelled(), "cancel", appointment)
            appointment.cancel(reason)
            await session.flush()
            return appointment

        appointment = await self._run(operation)
        logger.info(
            f"Canceled appointment {appointment_id}",
            extra={"appointment_id": str(appointment_id), "reason": reason},
        )
        return appointment

    async def complete(self, appointment_id: uuid.UUID) -> Appointment:
        """Mark an approved appointment completed."""

        async def operation(session: AsyncSession) -> Appointment:
            store = AppointmentStore(session)
            appointment = await store.get_or_raise(appointment_id, for_update=True)
            self._require(appointment.can_complete(), "complete", appointment)
            appointment.complete()
            await session.flush()
            return appointment

        appointment = await self._run(operation)
        logger.info(
            f"Completed appointment {appointment_id}",
            extra={"appointment_id": str(appointment_id)},
        )
        return appointment

    async def get_appointment(self, appointment_id: uuid.UUID) -> Appointment:
        """
        Load one appointment.

        Raises:
            NotFoundException: If no appointment has that id
        """
        return await self._read(lambda unit: unit.store.get_or_raise(appointment_id))

    # Clinic calendar

    async def disable_date(
        self,
        day: date,
        reason: Optional[str] = None,
        disabled_by: Optional[uuid.UUID] = None,
    ) -> DisabledDate:
        return await self._run(
            lambda session: ClinicCalendar(session, self.config).disable_date(
                day, reason, disabled_by
            )
        )

    async def enable_date(self, day: date) -> None:
        await self._run(
            lambda session: ClinicCalendar(session, self.config).enable_date(day)
        )

    async def list_disabled_dates(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[DisabledDate]:
        return await self._read(lambda unit: unit.calendar.list_disabled_dates(start, end))

    async def seed_appointment_types(self) -> List[str]:
        """Create any missing standard appointment types; returns their names."""
        created = await self._run(
            lambda session: AppointmentTypeRegistry(session, self.config).seed_defaults()
        )
        return [appointment_type.name for appointment_type in created]

    # Helpers

    @staticmethod
    def _type_refs(appointment: Appointment) -> List[TypeRef]:
        type_ids: List[TypeRef] = list(appointment.type_ids)
        if not type_ids and appointment.appointment_type_id is not None:
            type_ids.append(appointment.appointment_type_id)
        return type_ids

    async def _limits_for(
        self, unit: _Unit, appointment: Appointment, day: date
    ) -> ValidationOutcome:
        return await unit.validator.check_daily_limits(
            self._type_refs(appointment),
            day,
            exclude_id=appointment.id,
            requested=max(1, len(appointment.patient_ids)),
        )

    @staticmethod
    def _require(allowed: bool, action: str, appointment: Appointment) -> None:
        if not allowed:
            raise BusinessRuleException(
                f"Cannot {action} appointment with status {appointment.status.value}",
                rule_name=f"appointment_{action}",
                context={
                    "appointment_id": str(appointment.id),
                    "status": appointment.status.value,
                },
            )

    @staticmethod
    def _log_result(action: str, result: BookingResult, day: Optional[date]) -> None:
        extra = {
            "action": action,
            "appointment_date": day.isoformat() if day else None,
            "appointment_ids": [str(i) for i in result.appointment_ids],
        }
        if result.is_success:
            logger.info(f"Appointment {action} succeeded", extra=extra)
        else:
            extra["violations"] = [v.code.value for v in result.outcome.violations]
            logger.warning(f"Appointment {action} rejected", extra=extra)
