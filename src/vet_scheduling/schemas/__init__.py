"""
Pydantic schemas for data validation and serialization.

This module contains the request and response schemas the web layer uses
around the booking service.
"""

from .appointment import (
    CLIENT_RESCHEDULE_REASONS,
    STAFF_RESCHEDULE_REASONS,
    AppointmentApproval,
    AppointmentCancel,
    AppointmentReschedule,
    AppointmentResponse,
    StaffReschedule,
)
from .availability import (
    AvailableSlotsResponse,
    BookingResultResponse,
    BookingViolationResponse,
    DailyLimitStatus,
)
from .booking import MAX_SYMPTOMS_LENGTH, BookingCreate
from .calendar import DisabledDateCreate, DisabledDateResponse

__all__ = [
    # Booking
    "BookingCreate",
    "MAX_SYMPTOMS_LENGTH",
    # Appointment lifecycle
    "AppointmentApproval",
    "AppointmentCancel",
    "AppointmentReschedule",
    "AppointmentResponse",
    "StaffReschedule",
    "CLIENT_RESCHEDULE_REASONS",
    "STAFF_RESCHEDULE_REASONS",
    # Availability
    "AvailableSlotsResponse",
    "BookingResultResponse",
    "BookingViolationResponse",
    "DailyLimitStatus",
    # Calendar
    "DisabledDateCreate",
    "DisabledDateResponse",
]
