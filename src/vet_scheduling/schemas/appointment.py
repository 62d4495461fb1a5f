"""
Appointment Pydantic schemas for lifecycle requests and responses.
"""

from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.appointment import AppointmentStatus
from ..utils.datetime_utils import format_12_hour, parse_clock_time

STAFF_RESCHEDULE_REASONS = [
    "Scheduling conflict",
    "Veterinarian unavailable",
    "No show",
    "Others",
]

CLIENT_RESCHEDULE_REASONS = [
    "Personal reason",
    "Emergency",
    "Health related",
    "Booked incorrect date/time",
    "Other/Prefer not to say",
]


class AppointmentApproval(BaseModel):
    """Schema for staff approval, optionally moving the appointment."""

    model_config = ConfigDict(validate_assignment=True)

    appointment_date: Optional[date] = Field(
        None, description="New date; keep the current one if omitted"
    )
    appointment_time: Optional[time] = Field(
        None, description="New time; keep the current one if omitted"
    )

    @field_validator("appointment_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        if v is None or v == "":
            return None
        return parse_clock_time(v)


class AppointmentReschedule(BaseModel):
    """Schema for a client rescheduling a pending appointment."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    appointment_date: date = Field(..., description="New appointment date")
    appointment_time: time = Field(..., description="New time, 'hh:mm AM' or 'HH:MM'")
    reschedule_reason: str = Field(..., description="Reason for rescheduling")

    @field_validator("appointment_time", mode="before")
    @classmethod
    def parse_time(cls, v):
        return parse_clock_time(v)

    @field_validator("reschedule_reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Validate the reason against the client list."""
        if v not in CLIENT_RESCHEDULE_REASONS:
            raise ValueError(
                f"Reschedule reason must be one of: {', '.join(CLIENT_RESCHEDULE_REASONS)}"
            )
        return v


class StaffReschedule(AppointmentReschedule):
    """Schema for staff rescheduling a pending appointment."""

    @field_validator("reschedule_reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Validate the reason against the staff list."""
        if v not in STAFF_RESCHEDULE_REASONS:
            raise ValueError(
                f"Reschedule reason must be one of: {', '.join(STAFF_RESCHEDULE_REASONS)}"
            )
        return v


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    cancellation_reason: Optional[str] = Field(
        None, description="Reason for cancellation", max_length=500
    )

    @field_validator("cancellation_reason")
    @classmethod
    def validate_cancellation_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class AppointmentResponse(BaseModel):
    """
    Schema for appointment response data.

    ``appointment_type_id`` and ``patient_id`` are the single-valued view
    older clients expect; they are derived from the association sets here.
    """

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
    )

    id: UUID = Field(..., description="Appointment's unique identifier")
    appointment_date: date = Field(..., description="Appointment date")
    appointment_time: time = Field(..., description="Appointment time")
    time_display: str = Field("", description="Time in 12-hour form")
    type_ids: List[UUID] = Field(default_factory=list, description="Appointment types")
    patient_ids: List[UUID] = Field(default_factory=list, description="Attending pets")
    appointment_type_id: Optional[UUID] = Field(
        None, description="First appointment type (legacy)"
    )
    patient_id: Optional[UUID] = Field(None, description="First pet (legacy)")
    owner_id: Optional[UUID] = Field(None, description="Pet owner")
    symptoms: Optional[str] = Field(None, description="Symptoms")
    status: AppointmentStatus = Field(..., description="Derived lifecycle status")
    is_approved: bool = Field(..., description="Approved by staff")
    is_completed: bool = Field(..., description="Completed")
    is_canceled: bool = Field(..., description="Canceled")
    approved_at: Optional[datetime] = Field(None, description="Approval timestamp")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")
    canceled_at: Optional[datetime] = Field(None, description="Cancellation timestamp")
    cancellation_reason: Optional[str] = Field(None, description="Reason for cancellation")
    reschedule_reason: Optional[str] = Field(None, description="Reason for last reschedule")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @model_validator(mode="after")
    def derive_legacy_fields(self) -> "AppointmentResponse":
        """Fill the legacy single-valued fields from the sets."""
        if self.type_ids:
            self.appointment_type_id = self.type_ids[0]
        if self.patient_ids:
            self.patient_id = self.patient_ids[0]
        if not self.time_display:
            self.time_display = format_12_hour(self.appointment_time)
        return self
