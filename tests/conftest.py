"""
Pytest configuration and fixtures for vet-scheduling tests.

This module provides the database setup (a temporary SQLite file per test),
the scheduling configuration, service fixtures, and factory classes for
appointments.
"""

import uuid
from datetime import date, datetime, time
from typing import AsyncGenerator, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from vet_scheduling.database.connection import create_engine
from vet_scheduling.database.session import SessionManager
from vet_scheduling.models import Appointment, AppointmentType
from vet_scheduling.models.base import Base
from vet_scheduling.scheduling import AppointmentBookingService
from vet_scheduling.utils.config import SchedulingConfig

# A Sunday with no clinic holiday, far enough after BOOKING_NOW for notice.
BOOKING_DATE = date(2025, 6, 1)
NEXT_DAY = date(2025, 6, 2)
BOOKING_NOW = datetime(2025, 5, 20, 9, 0, tzinfo=ZoneInfo("Asia/Manila"))


@pytest.fixture
def scheduling_config() -> SchedulingConfig:
    """Default clinic rules: 09:00-16:30, 30 minute slots, lunch 12:00-13:00."""
    return SchedulingConfig()


@pytest.fixture
def booking_date() -> date:
    return BOOKING_DATE


@pytest.fixture
def booking_now() -> datetime:
    return BOOKING_NOW


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a test engine on a temporary SQLite file.

    A file (rather than ``:memory:``) lets every pooled connection see the
    tables created here.
    """
    engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduling_test.db'}",
        use_null_pool=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_manager(test_engine: AsyncEngine) -> SessionManager:
    return SessionManager(test_engine)


@pytest_asyncio.fixture
async def async_session(
    session_manager: SessionManager,
) -> AsyncGenerator[AsyncSession, None]:
    """Session for direct model tests; rolled back afterwards."""
    async with session_manager.get_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def booking_service(
    session_manager: SessionManager, scheduling_config: SchedulingConfig
) -> AppointmentBookingService:
    """Booking service with the standard appointment types seeded."""
    service = AppointmentBookingService(
        session_manager, scheduling_config, max_retries=1, retry_delay=0.0
    )
    await service.seed_appointment_types()
    return service


@pytest_asyncio.fixture
async def appointment_types(
    booking_service: AppointmentBookingService,
) -> Dict[str, AppointmentType]:
    """Seeded appointment types keyed by name."""
    async with booking_service.session_manager.get_session() as session:
        result = await session.execute(select(AppointmentType))
        return {t.name: t for t in result.scalars().all()}


class AppointmentFactory:
    """Factory for creating test Appointment instances."""

    @staticmethod
    def build(
        appointment_types: Iterable[AppointmentType] = (),
        patient_ids: Optional[Iterable[uuid.UUID]] = None,
        **kwargs,
    ) -> Appointment:
        """Build an Appointment instance without saving to database."""
        defaults = {
            "appointment_date": BOOKING_DATE,
            "appointment_time": time(9, 0),
            "owner_id": uuid.uuid4(),
            "symptoms": "Routine visit",
        }
        defaults.update(kwargs)
        appointment = Appointment(**defaults)
        appointment.attach_types(appointment_types)
        appointment.attach_patients(
            patient_ids if patient_ids is not None else [uuid.uuid4()]
        )
        return appointment

    @staticmethod
    async def create(
        session: AsyncSession,
        appointment_types: Iterable[AppointmentType] = (),
        **kwargs,
    ) -> Appointment:
        """Create and save an Appointment instance to the database."""
        merged = [await session.merge(t, load=False) for t in appointment_types]
        appointment = AppointmentFactory.build(merged, **kwargs)
        session.add(appointment)
        await session.flush()
        return appointment

    @staticmethod
    async def create_many(
        session_manager: SessionManager,
        count: int,
        appointment_type: Optional[AppointmentType] = None,
        **kwargs,
    ) -> List[uuid.UUID]:
        """Commit ``count`` appointments of one type and return their ids."""
        ids = []
        async with session_manager.get_transaction() as session:
            for _ in range(count):
                appointment = await AppointmentFactory.create(
                    session,
                    [appointment_type] if appointment_type is not None else [],
                    **kwargs,
                )
                ids.append(appointment.id)
        return ids


@pytest.fixture
def appointment_factory():
    """Provide AppointmentFactory for tests."""
    return AppointmentFactory
