"""
Appointment type model for the vet-scheduling package.

An appointment type is a named category of visit ("Vaccination",
"Check-up", ...). Its daily capacity is configuration, not stored state;
see ``SchedulingConfig.daily_limit_for``.
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class AppointmentTypeName:
    """Names of the appointment types offered by the clinic."""

    CHECK_UP = "Check-up"
    VACCINATION = "Vaccination"
    CASTRATION = "Castration"
    MINOR_SURGERY = "Minor Surgery"
    DEWORMING = "Deworming"
    CONSULTATION = "Consultation"

    ALL_TYPES = [
        CHECK_UP,
        VACCINATION,
        CASTRATION,
        MINOR_SURGERY,
        DEWORMING,
        CONSULTATION,
    ]


class AppointmentType(BaseModel):
    """Named category of appointment."""

    __tablename__ = "appointment_types"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Display name of the appointment type",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Optional description shown to clients",
    )

    def __repr__(self) -> str:
        """String representation of the AppointmentType model."""
        return f"<AppointmentType(id={self.id}, name='{self.name}')>"
