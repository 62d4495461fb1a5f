"""
Appointment model for the vet-scheduling package.

This module contains the Appointment SQLAlchemy model, its association sets
for appointment types and patients, and the lifecycle transitions
(approve, reschedule, cancel, complete).

The association sets are authoritative. The single-valued
``appointment_type_id`` / ``patient_id`` columns exist for rows created
before the sets did; they are only ever written from the sets
(see ``Appointment._sync_legacy_columns``).
"""

import enum
import uuid
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from ..utils.datetime_utils import format_12_hour
from .appointment_type import AppointmentType
from .base import Base, BaseModel


class AppointmentStatus(enum.Enum):
    """Status derived from the lifecycle flags."""

    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELED = "canceled"


appointment_appointment_types = Table(
    "appointment_appointment_types",
    Base.metadata,
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "appointment_type_id",
        UUID(as_uuid=True),
        ForeignKey("appointment_types.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("idx_appointment_appointment_types_type", "appointment_type_id"),
)


class AppointmentPatient(Base):
    """Membership of a patient (pet) in an appointment."""

    __tablename__ = "appointment_patients"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"),
        primary_key=True,
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        comment="UUID of the patient (pet) attending the appointment",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    appointment: Mapped["Appointment"] = relationship(back_populates="patient_links")


class Appointment(BaseModel):
    """
    A scheduled clinic visit for one or more pets and appointment types.

    Lifecycle: created pending by a client booking (or approved directly by
    staff), optionally rescheduled while pending, approved by staff,
    completed once a prescription is issued, or canceled. Canceled
    appointments are kept and never count toward any limit.
    """

    __tablename__ = "appointments"

    appointment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="Calendar day of the appointment",
    )

    appointment_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
        comment="Slot time of day, minute precision",
    )

    # Legacy single-valued view of the association sets
    appointment_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("appointment_types.id", ondelete="SET NULL"),
        nullable=True,
        comment="First appointment type (legacy column)",
    )

    patient_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="First patient (legacy column)",
    )

    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        index=True,
        comment="UUID of the pet owner who booked",
    )

    symptoms: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Symptoms described by the owner",
    )

    is_approved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    is_canceled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    canceled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancellation_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    reschedule_reason: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    appointment_types: Mapped[List[AppointmentType]] = relationship(
        secondary=appointment_appointment_types,
        lazy="selectin",
    )

    patient_links: Mapped[List[AppointmentPatient]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "NOT (is_completed AND is_canceled)",
            name="ck_appointments_not_completed_and_canceled",
        ),
        # Daily-limit and slot-occupancy lookups
        Index("idx_appointments_date_canceled", "appointment_date", "is_canceled"),
        Index("idx_appointments_date_time", "appointment_date", "appointment_time"),
        Index("idx_appointments_date_type", "appointment_date", "appointment_type_id"),
    )

    def __init__(self, **kwargs):
        """Initialize Appointment with lifecycle flags defaulted to False."""
        for flag in ("is_approved", "is_completed", "is_canceled"):
            kwargs.setdefault(flag, False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        """String representation of the Appointment model."""
        return (
            f"<Appointment(id={self.id}, date='{self.appointment_date}', "
            f"time='{self.appointment_time}', status='{self.status.value}')>"
        )

    @property
    def type_ids(self) -> List[uuid.UUID]:
        """IDs of every appointment type on this appointment."""
        return [appointment_type.id for appointment_type in self.appointment_types]

    @property
    def patient_ids(self) -> List[uuid.UUID]:
        """IDs of every patient attending this appointment."""
        return [link.patient_id for link in self.patient_links]

    @property
    def status(self) -> AppointmentStatus:
        """Lifecycle status; cancellation wins over completion over approval."""
        if self.is_canceled:
            return AppointmentStatus.CANCELED
        if self.is_completed:
            return AppointmentStatus.COMPLETED
        if self.is_approved:
            return AppointmentStatus.APPROVED
        return AppointmentStatus.PENDING

    @property
    def is_pending(self) -> bool:
        """Check if the appointment still awaits staff approval."""
        return self.status == AppointmentStatus.PENDING

    @property
    def time_display(self) -> str:
        """Slot time in the 12-hour form shown to clients."""
        return format_12_hour(self.appointment_time)

    def attach_types(self, appointment_types: Iterable[AppointmentType]) -> None:
        """Add appointment types to the set, ignoring ones already present."""
        present = set(self.type_ids)
        for appointment_type in appointment_types:
            if appointment_type.id not in present:
                self.appointment_types.append(appointment_type)
                present.add(appointment_type.id)
        self._sync_legacy_columns()

    def attach_patients(self, patient_ids: Iterable[uuid.UUID]) -> None:
        """Add patients to the set, ignoring ones already present."""
        present = set(self.patient_ids)
        for patient_id in patient_ids:
            if patient_id not in present:
                self.patient_links.append(AppointmentPatient(patient_id=patient_id))
                present.add(patient_id)
        self._sync_legacy_columns()

    def _sync_legacy_columns(self) -> None:
        type_ids = self.type_ids
        patient_ids = self.patient_ids
        self.appointment_type_id = type_ids[0] if type_ids else None
        self.patient_id = patient_ids[0] if patient_ids else None

    def can_be_approved(self) -> bool:
        """Check if staff can approve the appointment."""
        return not self.is_canceled and not self.is_completed

    def can_be_rescheduled(self) -> bool:
        """Check if the appointment can be moved; only pending ones can."""
        return self.is_pending

    def can_be_cancelled(self) -> bool:
        """Check if the appointment can be cancelled."""
        return not self.is_canceled and not self.is_completed

    def can_complete(self) -> bool:
        """Check if the appointment can be completed."""
        return self.is_approved and not self.is_canceled and not self.is_completed

    def approve(self) -> None:
        """Approve the appointment. Approving twice is allowed and refreshes approved_at."""
        if not self.can_be_approved():
            raise ValueError(
                f"Cannot approve appointment with status {self.status.value}"
            )

        self.is_approved = True
        self.approved_at = datetime.now(timezone.utc)

    def reschedule(
        self,
        appointment_date: date,
        appointment_time: time,
        reason: Optional[str] = None,
    ) -> None:
        """
        Move a pending appointment to a new date and time.

        The appointment stays pending and needs approval again.
        """
        if not self.can_be_rescheduled():
            raise ValueError(
                f"Cannot reschedule appointment with status {self.status.value}"
            )

        self.update_fields(
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            reschedule_reason=reason,
            is_approved=False,
        )

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Cancel the appointment. The record is kept.

        Args:
            reason: Reason for cancellation
        """
        if not self.can_be_cancelled():
            raise ValueError(
                f"Cannot cancel appointment with status {self.status.value}"
            )

        self.is_canceled = True
        self.canceled_at = datetime.now(timezone.utc)
        if reason:
            self.cancellation_reason = reason

    def complete(self) -> None:
        """Mark the appointment completed after its prescription is issued."""
        if not self.can_complete():
            raise ValueError(
                f"Cannot complete appointment with status {self.status.value}"
            )

        self.is_completed = True
        self.completed_at = datetime.now(timezone.utc)
