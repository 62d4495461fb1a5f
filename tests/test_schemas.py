"""
Tests for the booking, appointment, availability and calendar schemas.
"""

import uuid
from datetime import date, time

import pytest
from pydantic import ValidationError

from vet_scheduling.models import AppointmentType
from vet_scheduling.schemas import (
    AppointmentApproval,
    AppointmentCancel,
    AppointmentReschedule,
    AppointmentResponse,
    AvailableSlotsResponse,
    BookingCreate,
    BookingResultResponse,
    DailyLimitStatus,
    DisabledDateCreate,
    StaffReschedule,
)
from vet_scheduling.scheduling import (
    AvailableSlots,
    BookingResult,
    BookingViolationCode,
    DailyLimitCheck,
    ValidationOutcome,
)

from .conftest import AppointmentFactory


@pytest.fixture
def booking_data():
    return {
        "appointment_date": "2025-06-01",
        "appointment_times": ["10:00 AM", "13:30"],
        "patient_ids": [str(uuid.uuid4()), str(uuid.uuid4())],
        "appointment_types": ["Vaccination", " Deworming ", "Vaccination"],
        "symptoms": "Sneezing",
    }


class TestBookingCreate:
    """Test the booking submission schema."""

    def test_valid_booking(self, booking_data):
        """Test times are parsed and types cleaned."""
        booking = BookingCreate(**booking_data)

        assert booking.appointment_date == date(2025, 6, 1)
        assert booking.appointment_times == [time(10, 0), time(13, 30)]
        assert booking.appointment_types == ["Vaccination", "Deworming"]
        assert booking.approved is False

    def test_single_time_string(self, booking_data):
        """Test a single time string is accepted as a list."""
        booking_data["appointment_times"] = "02:00 PM"
        booking_data["patient_ids"] = booking_data["patient_ids"][:1]

        booking = BookingCreate(**booking_data)

        assert booking.appointment_times == [time(14, 0)]

    def test_invalid_time(self, booking_data):
        """Test malformed times are rejected."""
        booking_data["appointment_times"] = ["half past ten"]

        with pytest.raises(ValidationError):
            BookingCreate(**booking_data)

    def test_duplicate_pets(self, booking_data):
        """Test a pet cannot be selected twice."""
        pet = str(uuid.uuid4())
        booking_data["patient_ids"] = [pet, pet]

        with pytest.raises(ValidationError, match="only be selected once"):
            BookingCreate(**booking_data)

    def test_blank_types(self, booking_data):
        """Test a list of blank types is rejected."""
        booking_data["appointment_types"] = ["  "]

        with pytest.raises(ValidationError, match="At least one appointment type"):
            BookingCreate(**booking_data)

    def test_symptoms_length(self, booking_data):
        """Test the symptoms length limit."""
        booking_data["symptoms"] = "x" * 1826

        with pytest.raises(ValidationError):
            BookingCreate(**booking_data)

    def test_blank_symptoms(self, booking_data):
        """Test blank symptoms become None."""
        booking_data["symptoms"] = "   "

        assert BookingCreate(**booking_data).symptoms is None

    def test_to_request(self, booking_data):
        """Test conversion to the service request."""
        request = BookingCreate(**booking_data).to_request()

        assert request.appointment_times == [time(10, 0), time(13, 30)]
        assert [str(p) for p in request.patient_ids] == booking_data["patient_ids"]
        assert request.type_refs == ["Vaccination", "Deworming"]
        assert request.symptoms == "Sneezing"


class TestLifecycleSchemas:
    """Test approval, reschedule and cancel schemas."""

    def test_approval_optional_move(self):
        """Test approval with and without a new slot."""
        assert AppointmentApproval().appointment_time is None

        approval = AppointmentApproval(appointment_date="2025-06-02", appointment_time="03:00 PM")

        assert approval.appointment_time == time(15, 0)

    def test_client_reschedule_reasons(self):
        """Test clients must pick one of their reasons."""
        reschedule = AppointmentReschedule(
            appointment_date="2025-06-02",
            appointment_time="09:30 AM",
            reschedule_reason="Emergency",
        )

        assert reschedule.appointment_time == time(9, 30)
        with pytest.raises(ValidationError, match="Reschedule reason"):
            AppointmentReschedule(
                appointment_date="2025-06-02",
                appointment_time="09:30 AM",
                reschedule_reason="No show",
            )

    def test_staff_reschedule_reasons(self):
        """Test staff pick from the staff list."""
        reschedule = StaffReschedule(
            appointment_date="2025-06-02",
            appointment_time="12:30",
            reschedule_reason="No show",
        )

        assert reschedule.reschedule_reason == "No show"
        with pytest.raises(ValidationError):
            StaffReschedule(
                appointment_date="2025-06-02",
                appointment_time="12:30",
                reschedule_reason="Emergency",
            )

    def test_cancel_reason(self):
        """Test blank cancellation reasons become None."""
        assert AppointmentCancel(cancellation_reason="  ").cancellation_reason is None
        assert AppointmentCancel(cancellation_reason=" Sick ").cancellation_reason == "Sick"


class TestResponseSchemas:
    """Test response schemas."""

    def test_appointment_response(self):
        """Test the legacy fields are derived from the sets."""
        vaccination = AppointmentType(id=uuid.uuid4(), name="Vaccination")
        pets = [uuid.uuid4(), uuid.uuid4()]
        appointment = AppointmentFactory.build(
            [vaccination], patient_ids=pets, id=uuid.uuid4(), appointment_time=time(13, 0)
        )

        response = AppointmentResponse.model_validate(appointment)

        assert response.type_ids == [vaccination.id]
        assert response.appointment_type_id == vaccination.id
        assert response.patient_id == pets[0]
        assert response.time_display == "01:00 PM"
        assert response.status == "pending"

    def test_available_slots_response(self):
        """Test building from the slot listing."""
        slots = AvailableSlots(available_times=["09:00 AM"], disabled_times=["10:00 AM"])

        response = AvailableSlotsResponse.model_validate(slots)

        assert response.available_times == ["09:00 AM"]
        assert response.is_date_disabled is False

    def test_daily_limit_status(self):
        """Test building from a limit check."""
        check = DailyLimitCheck("Vaccination", uuid.uuid4(), current_count=39, limit=40)

        status = DailyLimitStatus.model_validate(check)

        assert status.remaining == 1
        assert status.available is True

    def test_booking_result_response(self):
        """Test rejected results list violations and field errors."""
        outcome = ValidationOutcome()
        outcome.add(
            BookingViolationCode.DAILY_LIMIT_EXCEEDED,
            "appointment_date",
            "Vaccination appointment limit reached. Current: 40/40",
        )

        response = BookingResultResponse.from_result(BookingResult(outcome))

        assert response.success is False
        assert response.violations[0].code == "DailyLimitExceeded"
        assert response.errors == {
            "appointment_date": ["Vaccination appointment limit reached. Current: 40/40"]
        }

    def test_disabled_date_create(self):
        """Test blank reasons become None."""
        disabled = DisabledDateCreate(date="2025-06-01", reason="   ")

        assert disabled.date == date(2025, 6, 1)
        assert disabled.reason is None
