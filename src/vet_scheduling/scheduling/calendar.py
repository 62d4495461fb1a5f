"""
Clinic calendar: days on which no appointments are taken.

A day is unavailable when staff disabled it or, if the configuration
observes holidays, when it is a clinic holiday.
"""

import logging
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import BusinessRuleException, NotFoundException
from ..models import DisabledDate
from ..utils.config import SchedulingConfig
from ..utils.datetime_utils import get_current_local, is_holiday

logger = logging.getLogger(__name__)

DISABLED_DATE_MESSAGE = (
    "This date is not available for booking. "
    "The veterinarian is not available on this date."
)
HOLIDAY_MESSAGE = (
    "This date is not available for booking. The clinic is closed on this holiday."
)


class ClinicCalendar:
    """Disabled dates and holidays."""

    def __init__(self, session: AsyncSession, config: SchedulingConfig):
        self.session = session
        self.config = config

    async def get_disabled_date(self, day: date) -> Optional[DisabledDate]:
        result = await self.session.execute(
            select(DisabledDate).where(DisabledDate.date == day)
        )
        return result.scalar_one_or_none()

    async def unavailable_reason(self, day: date) -> Optional[str]:
        """
        Explain why ``day`` is closed for booking.

        Returns:
            A client-facing message, or None if the day is open
        """
        if await self.get_disabled_date(day) is not None:
            return DISABLED_DATE_MESSAGE
        if self.config.observe_holidays and is_holiday(day):
            return HOLIDAY_MESSAGE
        return None

    async def list_disabled_dates(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[DisabledDate]:
        stmt = select(DisabledDate).order_by(DisabledDate.date)
        if start is not None:
            stmt = stmt.where(DisabledDate.date >= start)
        if end is not None:
            stmt = stmt.where(DisabledDate.date <= end)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def disable_date(
        self,
        day: date,
        reason: Optional[str] = None,
        disabled_by: Optional[uuid.UUID] = None,
        today: Optional[date] = None,
    ) -> DisabledDate:
        """
        Close the clinic on ``day``.

        Raises:
            BusinessRuleException: If the day is in the past or already disabled
        """
        today = today or get_current_local(self.config.timezone).date()
        if day < today:
            raise BusinessRuleException(
                "Cannot disable a date in the past",
                rule_name="disable_past_date",
                context={"date": day.isoformat()},
            )
        if await self.get_disabled_date(day) is not None:
            raise BusinessRuleException(
                "This date is already disabled",
                rule_name="date_already_disabled",
                context={"date": day.isoformat()},
            )

        disabled = DisabledDate(date=day, reason=reason, disabled_by=disabled_by)
        self.session.add(disabled)
        await self.session.flush()
        logger.info(
            f"Disabled booking date {day.isoformat()}",
            extra={"date": day.isoformat(), "reason": reason},
        )
        return disabled

    async def enable_date(self, day: date) -> None:
        """
        Re-open a disabled day.

        Raises:
            NotFoundException: If the day is not disabled
        """
        disabled = await self.get_disabled_date(day)
        if disabled is None:
            raise NotFoundException("DisabledDate", day.isoformat())

        await self.session.delete(disabled)
        await self.session.flush()
        logger.info(
            f"Enabled booking date {day.isoformat()}", extra={"date": day.isoformat()}
        )
