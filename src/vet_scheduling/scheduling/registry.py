"""
Appointment type registry.

Types are looked up by UUID or by name (case-insensitive). Daily caps come
from ``SchedulingConfig``, never from the database.
"""

import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AppointmentType, AppointmentTypeName
from ..utils.config import SchedulingConfig, list_configured_types

logger = logging.getLogger(__name__)

TypeRef = Union[uuid.UUID, str]


def _as_uuid(value: TypeRef) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class AppointmentTypeRegistry:
    """Resolves appointment types and their daily limits."""

    def __init__(self, session: AsyncSession, config: SchedulingConfig):
        self.session = session
        self.config = config

    async def find_by_id_or_name(self, ref: TypeRef) -> Optional[AppointmentType]:
        """
        Find an appointment type by UUID, or by name ignoring case.

        Args:
            ref: UUID (or UUID string) or type name

        Returns:
            The matching AppointmentType, or None
        """
        type_id = _as_uuid(ref)
        if type_id is not None:
            return await self.session.get(AppointmentType, type_id)

        name = str(ref).strip()
        stmt = select(AppointmentType).where(
            func.lower(AppointmentType.name) == name.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    def daily_limit(self, name: str) -> int:
        """Daily cap for a type name (exact, case-insensitive, then default)."""
        return self.config.daily_limit_for(name)

    async def list_types(self) -> List[AppointmentType]:
        result = await self.session.execute(
            select(AppointmentType).order_by(AppointmentType.name)
        )
        return list(result.scalars().all())

    async def seed_defaults(self) -> List[AppointmentType]:
        """
        Create the clinic's standard types and any type with a configured limit.

        Existing types are left alone. Returns the types created.
        """
        existing = {t.name.casefold() for t in await self.list_types()}
        wanted = list(AppointmentTypeName.ALL_TYPES)
        wanted.extend(
            name for name in list_configured_types(self.config) if name not in wanted
        )

        created: List[AppointmentType] = []
        for name in wanted:
            if name.casefold() in existing:
                continue
            appointment_type = AppointmentType(name=name)
            self.session.add(appointment_type)
            existing.add(name.casefold())
            created.append(appointment_type)

        if created:
            await self.session.flush()
            logger.info(
                f"Seeded {len(created)} appointment types",
                extra={"appointment_types": [t.name for t in created]},
            )
        return created
