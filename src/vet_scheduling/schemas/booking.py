"""
Booking request schemas.

Validates a booking submission from the web layer and converts it into the
``BookingRequest`` the booking service consumes.
"""

from datetime import date, time
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..scheduling.composer import BookingRequest
from ..utils.datetime_utils import parse_clock_time

MAX_SYMPTOMS_LENGTH = 1825


class BookingCreate(BaseModel):
    """Schema for a client (or staff) booking submission."""

    model_config = ConfigDict(
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    appointment_date: date = Field(..., description="Requested appointment date")
    appointment_times: List[time] = Field(
        ...,
        description="One time per pet, as 'hh:mm AM' or 'HH:MM'",
        min_length=1,
    )
    patient_ids: List[UUID] = Field(
        ..., description="UUIDs of the pets attending", min_length=1
    )
    appointment_types: List[Union[UUID, str]] = Field(
        ...,
        description="Appointment type UUIDs or names",
        min_length=1,
    )
    owner_id: Optional[UUID] = Field(None, description="UUID of the pet owner")
    symptoms: Optional[str] = Field(
        None,
        description="Symptoms described by the owner",
        max_length=MAX_SYMPTOMS_LENGTH,
    )
    approved: bool = Field(
        False, description="Staff-created bookings start out approved"
    )

    @field_validator("appointment_times", mode="before")
    @classmethod
    def parse_times(cls, v):
        """Accept 12-hour and 24-hour time strings."""
        if isinstance(v, (str, time)):
            v = [v]
        try:
            return [parse_clock_time(item) for item in v]
        except (TypeError, AttributeError):
            raise ValueError("Appointment times must be time strings")

    @field_validator("appointment_types")
    @classmethod
    def validate_appointment_types(cls, v: List[Union[UUID, str]]) -> List[Union[UUID, str]]:
        """Drop blanks and duplicates while keeping order."""
        cleaned = []
        for item in v:
            if isinstance(item, str):
                item = item.strip()
                if not item:
                    continue
            if item not in cleaned:
                cleaned.append(item)
        if not cleaned:
            raise ValueError("At least one appointment type is required")
        return cleaned

    @field_validator("symptoms")
    @classmethod
    def validate_symptoms(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_unique_patients(self) -> "BookingCreate":
        """A pet can appear only once per submission."""
        if len(set(self.patient_ids)) != len(self.patient_ids):
            raise ValueError("Each pet can only be selected once")
        return self

    def to_request(self) -> BookingRequest:
        """Convert to the booking service's request type."""
        return BookingRequest(
            appointment_date=self.appointment_date,
            appointment_times=list(self.appointment_times),
            patient_ids=list(self.patient_ids),
            type_refs=list(self.appointment_types),
            owner_id=self.owner_id,
            symptoms=self.symptoms,
            approved=self.approved,
        )
