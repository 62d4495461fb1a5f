"""
Availability and capacity response schemas.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AvailableSlotsResponse(BaseModel):
    """Open slots for a date, as shown in the booking form."""

    model_config = ConfigDict(from_attributes=True)

    appointment_date: Optional[date] = Field(None, description="Date queried")
    available_times: List[str] = Field(
        default_factory=list, description="Open slots, e.g. '09:00 AM'"
    )
    disabled_times: List[str] = Field(
        default_factory=list, description="Slots already taken"
    )
    is_date_disabled: bool = Field(False, description="Whether the clinic is closed")
    message: Optional[str] = Field(None, description="Why the date is closed")


class DailyLimitStatus(BaseModel):
    """Capacity of one appointment type on one date."""

    model_config = ConfigDict(from_attributes=True)

    appointment_type: str = Field(..., description="Appointment type name")
    type_id: Optional[UUID] = Field(None, description="Appointment type UUID")
    current_count: int = Field(..., description="Non-canceled appointments booked", ge=0)
    limit: int = Field(..., description="Daily cap for the type", ge=0)
    remaining: int = Field(..., description="max(0, limit - current_count)", ge=0)
    requested: int = Field(1, description="Appointments the request would add", ge=0)
    available: bool = Field(..., description="Whether the request fits")


class BookingViolationResponse(BaseModel):
    """One rejected constraint."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    code: str = Field(..., description="Violation code, e.g. 'BufferViolation'")
    field: str = Field(..., description="Request field the violation concerns")
    message: str = Field(..., description="Client-facing message")
    details: Dict[str, Any] = Field(default_factory=dict)


class BookingResultResponse(BaseModel):
    """Result of a booking, approval or reschedule."""

    success: bool = Field(..., description="Whether the request was applied")
    appointment_ids: List[UUID] = Field(default_factory=list)
    violations: List[BookingViolationResponse] = Field(default_factory=list)
    limit_checks: List[DailyLimitStatus] = Field(default_factory=list)
    errors: Dict[str, List[str]] = Field(
        default_factory=dict, description="Violation messages grouped by field"
    )

    @classmethod
    def from_result(cls, result) -> "BookingResultResponse":
        """Build from a ``BookingResult``."""
        outcome = result.outcome
        return cls(
            success=result.is_success,
            appointment_ids=result.appointment_ids,
            violations=[v.to_dict() for v in outcome.violations],
            limit_checks=[c.to_dict() for c in outcome.limit_checks],
            errors=outcome.errors_by_field(),
        )
