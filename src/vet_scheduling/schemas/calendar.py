"""
Clinic calendar schemas.
"""

import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DisabledDateCreate(BaseModel):
    """Schema for closing the clinic on a date."""

    model_config = ConfigDict(str_strip_whitespace=True)

    date: datetime.date = Field(..., description="Date to disable")
    reason: Optional[str] = Field(
        None, description="Reason shown to clients", max_length=500
    )
    disabled_by: Optional[UUID] = Field(None, description="Staff user disabling it")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v:
            return None
        return v


class DisabledDateResponse(BaseModel):
    """Schema for disabled date response data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Record identifier")
    date: datetime.date = Field(..., description="Disabled date")
    reason: Optional[str] = Field(None, description="Reason")
    disabled_by: Optional[UUID] = Field(None, description="Staff user who disabled it")
    created_at: Optional[datetime.datetime] = Field(None, description="Creation timestamp")
