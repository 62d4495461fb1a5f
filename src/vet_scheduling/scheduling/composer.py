"""
Multi-pet, multi-type booking composition.

One submission carries N pets, one time per pet, and M appointment types.
It becomes one Appointment per distinct type, each with every pet
attached. Nothing is built unless every (pet, time) pairing and every type
limit passes.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional, Sequence

from ..models import Appointment, AppointmentType
from .registry import TypeRef
from .validator import BookingValidator
from .violations import BookingViolationCode, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    """A client or staff booking submission."""

    appointment_date: date
    appointment_times: Sequence[time]
    patient_ids: Sequence[uuid.UUID]
    type_refs: Sequence[TypeRef]
    owner_id: Optional[uuid.UUID] = None
    symptoms: Optional[str] = None
    approved: bool = False


@dataclass
class Composition:
    """The appointments a submission would create, or why it cannot."""

    outcome: ValidationOutcome
    appointments: List[Appointment] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.outcome.is_valid


class BookingComposer:
    """Validates a submission and builds its unsaved Appointment records."""

    def __init__(self, validator: BookingValidator):
        self.validator = validator

    async def compose(
        self, request: BookingRequest, now: Optional[datetime] = None
    ) -> Composition:
        outcome = ValidationOutcome()

        patient_ids = list(dict.fromkeys(request.patient_ids))
        times = list(request.appointment_times)
        if not patient_ids or len(times) != len(patient_ids):
            outcome.add(
                BookingViolationCode.SLOT_COUNT_MISMATCH,
                "appointment_times",
                "Select exactly one time slot for each pet.",
                times=len(times),
                pets=len(patient_ids),
            )
            return Composition(outcome)

        if not request.type_refs:
            outcome.add(
                BookingViolationCode.APPOINTMENT_TYPE_NOT_FOUND,
                "appointment_type",
                "Select at least one appointment type.",
            )
            return Composition(outcome)

        # Each pet's slot is judged against stored bookings independently
        for index, (patient_id, at) in enumerate(zip(patient_ids, times)):
            slot_outcome = await self.validator.validate_slot(
                request.appointment_date, at, now=now
            )
            for violation in slot_outcome.violations:
                violation.field = f"appointment_times.{index}"
                violation.details["patient_id"] = str(patient_id)
            outcome.extend(slot_outcome)

        if not outcome.is_valid:
            return Composition(outcome)

        outcome.extend(
            await self.validator.check_daily_limits(
                request.type_refs,
                request.appointment_date,
                requested=len(patient_ids),
            )
        )
        if not outcome.is_valid:
            return Composition(outcome)

        appointment_types = await self._resolve_types(request.type_refs)
        appointments = []
        for appointment_type in appointment_types:
            appointment = Appointment(
                appointment_date=request.appointment_date,
                appointment_time=times[0],
                owner_id=request.owner_id,
                symptoms=request.symptoms,
            )
            appointment.attach_types([appointment_type])
            appointment.attach_patients(patient_ids)
            if request.approved:
                appointment.approve()
            appointments.append(appointment)

        logger.debug(
            f"Composed {len(appointments)} appointments for {len(patient_ids)} pets",
            extra={"appointment_date": request.appointment_date.isoformat()},
        )
        return Composition(outcome, appointments)

    async def _resolve_types(self, type_refs: Sequence[TypeRef]) -> List[AppointmentType]:
        resolved: List[AppointmentType] = []
        seen = set()
        for type_ref in type_refs:
            appointment_type = await self.validator.registry.find_by_id_or_name(type_ref)
            if appointment_type is not None and appointment_type.id not in seen:
                seen.add(appointment_type.id)
                resolved.append(appointment_type)
        return resolved
