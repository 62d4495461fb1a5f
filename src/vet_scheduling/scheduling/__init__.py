"""
Appointment slot and limit engine.

Slot generation and filters, the booking validator, the multi-pet booking
composer, and the transactional booking service built on them.
"""

from .calendar import DISABLED_DATE_MESSAGE, HOLIDAY_MESSAGE, ClinicCalendar
from .composer import BookingComposer, BookingRequest, Composition
from .registry import AppointmentTypeRegistry
from .service import AppointmentBookingService, BookingResult
from .slots import (
    AvailableSlots,
    compute_available_slots,
    generate_time_slots,
    has_daily_capacity,
    is_already_booked,
    is_during_lunch_break,
    is_within_working_hours,
    meets_minimum_notice,
    violates_buffer_time,
)
from .store import AppointmentStore
from .validator import BookingAttempt, BookingValidator
from .violations import (
    BookingViolation,
    BookingViolationCode,
    DailyLimitCheck,
    ValidationOutcome,
)

__all__ = [
    # Slots and filters
    "AvailableSlots",
    "compute_available_slots",
    "generate_time_slots",
    "has_daily_capacity",
    "is_already_booked",
    "is_during_lunch_break",
    "is_within_working_hours",
    "meets_minimum_notice",
    "violates_buffer_time",
    # Validation results
    "BookingViolation",
    "BookingViolationCode",
    "DailyLimitCheck",
    "ValidationOutcome",
    # Store and registry
    "AppointmentStore",
    "AppointmentTypeRegistry",
    "ClinicCalendar",
    "DISABLED_DATE_MESSAGE",
    "HOLIDAY_MESSAGE",
    # Validator, composer and service
    "BookingAttempt",
    "BookingValidator",
    "BookingComposer",
    "BookingRequest",
    "Composition",
    "AppointmentBookingService",
    "BookingResult",
]
