"""
Appointment store: the queries the booking validator and service run.

Every query ignores canceled appointments. Counts per appointment type use
union semantics: an appointment counts toward a type if its legacy
``appointment_type_id`` column names the type OR the type is in its
association set, and it counts once.
"""

import logging
import uuid
from datetime import date, time
from typing import List, Optional, Sequence

from sqlalchemy import distinct, exists, false, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundException
from ..models import Appointment, appointment_appointment_types

logger = logging.getLogger(__name__)

# First key of the two-key advisory lock; the second is the day's ordinal.
ADVISORY_LOCK_NAMESPACE = 7301


class AppointmentStore:
    """Reads and writes appointments within the caller's session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _active_on(self, day: date, exclude_id: Optional[uuid.UUID]) -> list:
        conditions = [
            Appointment.appointment_date == day,
            Appointment.is_canceled.is_(False),
        ]
        if exclude_id is not None:
            conditions.append(Appointment.id != exclude_id)
        return conditions

    async def count_non_canceled(
        self,
        day: date,
        type_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> int:
        """
        Count non-canceled appointments of one type on a day.

        Args:
            day: Appointment date
            type_id: Appointment type to count
            exclude_id: Appointment to leave out, e.g. the one being moved

        Returns:
            Number of distinct matching appointments
        """
        in_association = exists().where(
            appointment_appointment_types.c.appointment_id == Appointment.id,
            appointment_appointment_types.c.appointment_type_id == type_id,
        )
        stmt = select(func.count(distinct(Appointment.id))).where(
            *self._active_on(day, exclude_id),
            or_(Appointment.appointment_type_id == type_id, in_association),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_for_day(
        self, day: date, exclude_id: Optional[uuid.UUID] = None
    ) -> int:
        """Count non-canceled appointments of any type on a day."""
        stmt = select(func.count(Appointment.id)).where(
            *self._active_on(day, exclude_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def exists_at(
        self, day: date, at: time, exclude_id: Optional[uuid.UUID] = None
    ) -> bool:
        """Check if a non-canceled appointment occupies ``day`` at ``at``."""
        stmt = select(
            exists().where(
                *self._active_on(day, exclude_id),
                Appointment.appointment_time == at,
            )
        )
        result = await self.session.execute(stmt)
        return bool(result.scalar())

    async def times_booked(
        self, day: date, exclude_id: Optional[uuid.UUID] = None
    ) -> List[time]:
        """Distinct times of non-canceled appointments on a day, earliest first."""
        stmt = (
            select(Appointment.appointment_time)
            .where(*self._active_on(day, exclude_id))
            .distinct()
            .order_by(Appointment.appointment_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get(
        self, appointment_id: uuid.UUID, for_update: bool = False
    ) -> Optional[Appointment]:
        """
        Load an appointment by id.

        Args:
            appointment_id: Appointment UUID
            for_update: Lock the row until the transaction ends
        """
        stmt = select(Appointment).where(Appointment.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(
        self, appointment_id: uuid.UUID, for_update: bool = False
    ) -> Appointment:
        appointment = await self.get(appointment_id, for_update=for_update)
        if appointment is None:
            raise NotFoundException("Appointment", appointment_id)
        return appointment

    async def insert(self, appointment: Appointment) -> uuid.UUID:
        """Add a new appointment and flush it so its id is assigned."""
        self.session.add(appointment)
        await self.session.flush()
        logger.debug(
            f"Inserted appointment {appointment.id}",
            extra={
                "appointment_id": str(appointment.id),
                "appointment_date": appointment.appointment_date.isoformat(),
            },
        )
        return appointment.id

    async def update_date_time(
        self, appointment_id: uuid.UUID, day: date, at: time
    ) -> Appointment:
        """
        Move an appointment to a new date and time.

        Raises:
            NotFoundException: If the appointment does not exist
        """
        appointment = await self.get_or_raise(appointment_id)
        appointment.update_fields(appointment_date=day, appointment_time=at)
        await self.session.flush()
        return appointment

    async def lock_days(self, days: Sequence[date]) -> None:
        """
        Serialize count-and-write for the given days until the transaction ends.

        Takes a PostgreSQL transaction-scoped advisory lock per day, in date
        order. Counts read after the lock see every booking committed before
        it was granted under READ COMMITTED; under SERIALIZABLE a stale count
        ends in a retried serialization failure. SQLite has no row or advisory
        locks, so a no-op write takes the database write lock before anything
        is read.
        """
        dialect = self.session.bind.dialect.name
        if dialect == "sqlite":
            await self.session.execute(
                update(Appointment.__table__)
                .where(false())
                .values(is_canceled=Appointment.__table__.c.is_canceled)
            )
            return
        if dialect != "postgresql":
            return
        for day in sorted(set(days)):
            await self.session.execute(
                select(
                    func.pg_advisory_xact_lock(ADVISORY_LOCK_NAMESPACE, day.toordinal())
                )
            )
