"""
Tests for the Appointment, AppointmentType and DisabledDate models.
"""

import uuid
from datetime import time

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vet_scheduling.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    AppointmentTypeName,
    DisabledDate,
)

from .conftest import BOOKING_DATE, AppointmentFactory


@pytest.fixture
def vaccination():
    return AppointmentType(id=uuid.uuid4(), name=AppointmentTypeName.VACCINATION)


@pytest.fixture
def deworming():
    return AppointmentType(id=uuid.uuid4(), name=AppointmentTypeName.DEWORMING)


class TestAppointmentModel:
    """Test cases for the Appointment model."""

    def test_new_appointment_is_pending(self):
        """Test the lifecycle flags default to False."""
        appointment = Appointment(appointment_date=BOOKING_DATE, appointment_time=time(9, 0))

        assert appointment.is_approved is False
        assert appointment.is_completed is False
        assert appointment.is_canceled is False
        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.is_pending

    def test_time_display(self):
        """Test the 12-hour display form."""
        appointment = Appointment(appointment_date=BOOKING_DATE, appointment_time=time(13, 0))

        assert appointment.time_display == "01:00 PM"

    def test_attach_types_syncs_legacy_column(self, vaccination, deworming):
        """Test the legacy type column follows the first attached type."""
        appointment = AppointmentFactory.build([vaccination, deworming, vaccination])

        assert appointment.type_ids == [vaccination.id, deworming.id]
        assert appointment.appointment_type_id == vaccination.id

    def test_attach_patients_dedupes(self):
        """Test patients are attached once and the legacy column follows."""
        first, second = uuid.uuid4(), uuid.uuid4()
        appointment = AppointmentFactory.build(patient_ids=[first, second, first])

        assert appointment.patient_ids == [first, second]
        assert appointment.patient_id == first

    def test_approve(self):
        """Test approving sets the flag and timestamp."""
        appointment = AppointmentFactory.build()

        appointment.approve()

        assert appointment.status == AppointmentStatus.APPROVED
        assert appointment.approved_at is not None

    def test_reschedule_resets_approval(self):
        """Test only pending appointments can be rescheduled."""
        appointment = AppointmentFactory.build()

        appointment.reschedule(BOOKING_DATE, time(14, 0), "Emergency")

        assert appointment.appointment_time == time(14, 0)
        assert appointment.reschedule_reason == "Emergency"
        assert appointment.is_approved is False

        appointment.approve()
        with pytest.raises(ValueError, match="Cannot reschedule"):
            appointment.reschedule(BOOKING_DATE, time(15, 0))

    def test_cancel(self):
        """Test canceling keeps the reason and blocks further transitions."""
        appointment = AppointmentFactory.build()

        appointment.cancel("Personal reason")

        assert appointment.status == AppointmentStatus.CANCELED
        assert appointment.cancellation_reason == "Personal reason"
        assert appointment.canceled_at is not None
        assert not appointment.can_be_approved()
        with pytest.raises(ValueError, match="Cannot cancel"):
            appointment.cancel()
        with pytest.raises(ValueError, match="Cannot approve"):
            appointment.approve()

    def test_complete_requires_approval(self):
        """Test completion is only allowed after approval."""
        appointment = AppointmentFactory.build()

        with pytest.raises(ValueError, match="Cannot complete"):
            appointment.complete()

        appointment.approve()
        appointment.complete()

        assert appointment.status == AppointmentStatus.COMPLETED
        assert not appointment.can_be_cancelled()

    def test_to_dict(self):
        """Test serialization of column values."""
        appointment = AppointmentFactory.build(appointment_time=time(10, 30))

        data = appointment.to_dict()

        assert data["appointment_date"] == "2025-06-01"
        assert data["appointment_time"] == "10:30:00"
        assert data["is_canceled"] is False

    def test_update_fields_rejects_unknown(self):
        """Test unknown fields raise AttributeError."""
        appointment = AppointmentFactory.build()

        with pytest.raises(AttributeError):
            appointment.update_fields(not_a_field=1)


class TestModelPersistence:
    """Test the models against the database."""

    @pytest.mark.asyncio
    async def test_save_with_associations(self, async_session):
        """Test appointments persist with their type and patient sets."""
        vaccination = AppointmentType(name=AppointmentTypeName.VACCINATION)
        async_session.add(vaccination)
        await async_session.flush()
        pets = [uuid.uuid4(), uuid.uuid4()]

        appointment = await AppointmentFactory.create(
            async_session, [vaccination], patient_ids=pets
        )
        async_session.expunge_all()
        result = await async_session.execute(
            select(Appointment).where(Appointment.id == appointment.id)
        )
        loaded = result.scalar_one()

        assert loaded.type_ids == [vaccination.id]
        assert sorted(loaded.patient_ids) == sorted(pets)
        assert loaded.appointment_type_id == vaccination.id
        assert loaded.created_at is not None

    @pytest.mark.asyncio
    async def test_type_names_are_unique(self, async_session):
        """Test two types cannot share a name."""
        async_session.add(AppointmentType(name="Check-up"))
        await async_session.flush()
        async_session.add(AppointmentType(name="Check-up"))

        with pytest.raises(IntegrityError):
            await async_session.flush()

    @pytest.mark.asyncio
    async def test_completed_and_canceled_rejected(self, async_session):
        """Test the database refuses a completed and canceled appointment."""
        async_session.add(
            AppointmentFactory.build(is_completed=True, is_canceled=True)
        )

        with pytest.raises(IntegrityError):
            await async_session.flush()

    @pytest.mark.asyncio
    async def test_disabled_dates_are_unique(self, async_session):
        """Test a date can only be disabled once."""
        async_session.add(DisabledDate(date=BOOKING_DATE, reason="Seminar"))
        await async_session.flush()
        async_session.add(DisabledDate(date=BOOKING_DATE))

        with pytest.raises(IntegrityError):
            await async_session.flush()
