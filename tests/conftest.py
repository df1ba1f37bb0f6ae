"""
Shared pytest fixtures.

Store-level fixtures are parametrized so that every test using `stores`
runs against both the in-memory adapters and the SQL repositories on a
temporary SQLite database.
"""

import os
from datetime import date, datetime, time

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ["ENV"] = "test"

from medx360.core.base import Base
from medx360.core.config import SchedulingConfig
from medx360.modules.availability.service import AvailabilityResolver
from medx360.modules.bookings import models as _booking_models  # noqa: F401
from medx360.modules.bookings.repository import BookingRepository
from medx360.modules.bookings.schemas import Booking, PatientInfo
from medx360.modules.bookings.service import BookingScheduler
from medx360.modules.events.notifier import BookingNotifier
from medx360.modules.schedules import models as _schedule_models  # noqa: F401
from medx360.modules.schedules.repository import ScheduleRepository
from medx360.modules.schedules.schemas import WeeklyRule
from medx360.platform.adapters.store_memory import InMemoryBookingStore, InMemoryScheduleStore

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
DOCTOR = 42


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingBus:
    def __init__(self):
        self.published: list[dict] = []

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        self.published.append({"topic": topic, "key": key, **value})


# ============================================================================
# CONFIG / CLOCK
# ============================================================================


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig(
        min_lead_minutes=60,
        buffer_minutes=0,
        timezone="UTC",
        default_slot_minutes=30,
        store_timeout_seconds=5.0,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def clock() -> FixedClock:
    """A week before MONDAY, so lead time never interferes unless a test moves it."""
    return FixedClock(datetime(2030, 1, 1, 8, 0))


# ============================================================================
# STORES
# ============================================================================


@pytest_asyncio.fixture(params=["memory", "sql"])
async def stores(request, tmp_path):
    """(schedule_store, booking_store) pair."""
    if request.param == "memory":
        yield InMemoryScheduleStore(), InMemoryBookingStore()
        return
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stores.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    yield ScheduleRepository(sessions), BookingRepository(sessions)
    await engine.dispose()


@pytest.fixture
def schedule_store(stores):
    return stores[0]


@pytest.fixture
def booking_store(stores):
    return stores[1]


@pytest.fixture
def resolver(schedule_store, booking_store, config, clock) -> AvailabilityResolver:
    return AvailabilityResolver(schedule_store, booking_store, config, clock=clock)


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def notifier(bus) -> BookingNotifier:
    return BookingNotifier(bus)


@pytest.fixture
def scheduler(resolver, booking_store, config, notifier) -> BookingScheduler:
    return BookingScheduler(resolver, booking_store, config, notifier)


@pytest_asyncio.fixture
async def monday_morning(schedule_store) -> WeeklyRule:
    """Doctor works Mondays 09:00-12:00."""
    return await schedule_store.upsert_weekly_rule(
        WeeklyRule(doctor_id=DOCTOR, day_of_week=1, start_time=time(9), end_time=time(12))
    )


@pytest.fixture
def patient() -> PatientInfo:
    return PatientInfo(patient_name="Ada Lovelace", patient_email="ada@example.com", patient_phone="+44 20 7946 0000")


def make_booking(start: time, end: time, status: str = "confirmed", day: date = MONDAY, doctor_id: int = DOCTOR) -> Booking:
    duration = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return Booking(
        patient_name="Grace Hopper",
        doctor_id=doctor_id,
        appointment_date=day,
        start_time=start,
        end_time=end,
        duration_minutes=duration,
        status=status,
    )


@pytest.fixture
def booking_factory():
    return make_booking
