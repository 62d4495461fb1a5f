"""
Disabled date model for the vet-scheduling package.

Staff can close the clinic on a specific calendar day. No slots are offered
and no bookings are accepted for a disabled date.
"""

import datetime
import uuid
from typing import Optional

from sqlalchemy import Date, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class DisabledDate(BaseModel):
    """A calendar day on which the clinic takes no appointments."""

    __tablename__ = "disabled_dates"

    date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        unique=True,
        index=True,
        comment="Day the clinic is closed",
    )

    reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Reason shown to clients",
    )

    disabled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="UUID of the staff user who disabled the date",
    )

    def __repr__(self) -> str:
        """String representation of the DisabledDate model."""
        return f"<DisabledDate(date='{self.date}', reason='{self.reason}')>"
