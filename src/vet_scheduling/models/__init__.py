"""
Database models for the vet-scheduling package.

This module contains SQLAlchemy models for appointments, appointment types
and the clinic calendar.
"""

from .appointment import (
    Appointment,
    AppointmentPatient,
    AppointmentStatus,
    appointment_appointment_types,
)
from .appointment_type import AppointmentType, AppointmentTypeName

# Base model will be imported by all other models
from .base import Base, BaseModel
from .disabled_date import DisabledDate

__all__ = [
    "Base",
    "BaseModel",
    "Appointment",
    "AppointmentPatient",
    "AppointmentStatus",
    "AppointmentType",
    "AppointmentTypeName",
    "DisabledDate",
    "appointment_appointment_types",
]
