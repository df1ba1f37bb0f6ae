import uuid
from datetime import date, datetime, time, timezone

import pytest

from medx360.core.config import SchedulingConfig
from medx360.core.errors import ValidationError
from medx360.modules.availability.service import AvailabilityResolver
from medx360.modules.schedules.schemas import AvailabilityException, WeeklyRule

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
DOCTOR = 42

HALF_HOURS = [time(9), time(9, 30), time(10), time(10, 30), time(11), time(11, 30)]


def starts(slots):
    return [s.start_time for s in slots]


async def test_weekly_rule_gives_half_hour_slots(resolver, monday_morning):
    slots = await resolver.resolve(DOCTOR, MONDAY)
    assert starts(slots) == HALF_HOURS
    assert slots[-1].end_time == time(12)
    assert all(s.doctor_id == DOCTOR and s.date == MONDAY for s in slots)


async def test_no_rule_no_slots(resolver, monday_morning):
    assert await resolver.resolve(DOCTOR, TUESDAY) == []
    assert await resolver.resolve(DOCTOR + 1, MONDAY) == []


async def test_live_booking_removes_exactly_its_interval(resolver, monday_morning, booking_store, booking_factory):
    await booking_store.insert_booking(booking_factory(time(10), time(10, 30)))
    slots = await resolver.resolve(DOCTOR, MONDAY)
    assert starts(slots) == [time(9), time(9, 30), time(10, 30), time(11), time(11, 30)]


async def test_cancelled_booking_is_ignored(resolver, monday_morning, booking_store, booking_factory):
    await booking_store.insert_booking(booking_factory(time(10), time(10, 30), status="cancelled"))
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == HALF_HOURS


async def test_partial_blackout(resolver, monday_morning, schedule_store):
    await schedule_store.upsert_exception(
        AvailabilityException(doctor_id=DOCTOR, date=MONDAY, start_time=time(9), end_time=time(10), is_available=False)
    )
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == [time(10), time(10, 30), time(11), time(11, 30)]


async def test_whole_day_blackout(resolver, monday_morning, schedule_store):
    await schedule_store.upsert_exception(
        AvailabilityException(doctor_id=DOCTOR, date=MONDAY, is_available=False, reason="holiday")
    )
    assert await resolver.resolve(DOCTOR, MONDAY) == []


async def test_extra_hours_on_a_day_off(resolver, schedule_store):
    await schedule_store.upsert_exception(
        AvailabilityException(doctor_id=DOCTOR, date=TUESDAY, start_time=time(14), end_time=time(15))
    )
    assert starts(await resolver.resolve(DOCTOR, TUESDAY)) == [time(14), time(14, 30)]


async def test_unavailable_weekly_rule_is_subtracted(resolver, monday_morning, schedule_store):
    await schedule_store.upsert_weekly_rule(
        WeeklyRule(doctor_id=DOCTOR, day_of_week=1, start_time=time(10), end_time=time(11), is_available=False)
    )
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == [time(9), time(9, 30), time(11), time(11, 30)]


async def test_custom_duration_does_not_cross_interval_end(resolver, monday_morning):
    slots = await resolver.resolve(DOCTOR, MONDAY, 45)
    assert starts(slots) == [time(9), time(9, 45), time(10, 30), time(11, 15)]
    assert slots[-1].end_time == time(12)


async def test_duration_longer_than_any_interval(resolver, monday_morning):
    assert await resolver.resolve(DOCTOR, MONDAY, 240) == []


async def test_resolve_is_idempotent(resolver, monday_morning, booking_store, booking_factory):
    await booking_store.insert_booking(booking_factory(time(11), time(11, 30)))
    assert await resolver.resolve(DOCTOR, MONDAY) == await resolver.resolve(DOCTOR, MONDAY)


async def test_lead_time_hides_near_slots(resolver, monday_morning, clock):
    clock.now = datetime(2030, 1, 7, 9, 10)
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == [time(10, 30), time(11), time(11, 30)]


async def test_past_day_has_no_slots(resolver, monday_morning, clock):
    clock.now = datetime(2030, 1, 8, 7, 0)
    assert await resolver.resolve(DOCTOR, MONDAY) == []


async def test_aware_clock_is_converted_to_configured_zone(schedule_store, booking_store, monday_morning):
    config = SchedulingConfig(min_lead_minutes=0, timezone="Asia/Kolkata")
    # 03:45 UTC is 09:15 in Kolkata
    resolver = AvailabilityResolver(
        schedule_store, booking_store, config, clock=lambda: datetime(2030, 1, 7, 3, 45, tzinfo=timezone.utc)
    )
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == [time(9, 30), time(10), time(10, 30), time(11), time(11, 30)]


@pytest.mark.parametrize("duration", [0, 4, 1440, -30])
async def test_invalid_duration(resolver, duration):
    with pytest.raises(ValidationError):
        await resolver.resolve(DOCTOR, MONDAY, duration)


async def test_resolve_range_matches_single_day(resolver, monday_morning, schedule_store, booking_store, booking_factory):
    next_monday = date(2030, 1, 14)
    await schedule_store.upsert_exception(AvailabilityException(doctor_id=DOCTOR, date=next_monday, is_available=False))
    await booking_store.insert_booking(booking_factory(time(9), time(9, 30)))

    calendar = await resolver.resolve_range(DOCTOR, MONDAY, next_monday)
    assert list(calendar) == [date(2030, 1, d) for d in range(7, 15)]
    assert calendar[MONDAY] == await resolver.resolve(DOCTOR, MONDAY)
    assert calendar[TUESDAY] == []
    assert calendar[next_monday] == []


async def test_resolve_range_limits(resolver):
    with pytest.raises(ValidationError):
        await resolver.resolve_range(DOCTOR, TUESDAY, MONDAY)
    with pytest.raises(ValidationError):
        await resolver.resolve_range(DOCTOR, MONDAY, date(2030, 3, 31))


async def test_is_available(resolver, monday_morning, booking_store, booking_factory):
    await booking_store.insert_booking(booking_factory(time(10), time(10, 30)))
    assert await resolver.is_available(DOCTOR, MONDAY, time(9), 60)
    assert await resolver.is_available(DOCTOR, MONDAY, time(10, 30), 90)
    # off-grid starts are fine as long as the interval is open
    assert await resolver.is_available(DOCTOR, MONDAY, time(9, 10), 20)
    assert not await resolver.is_available(DOCTOR, MONDAY, time(9, 30), 60)
    assert not await resolver.is_available(DOCTOR, MONDAY, time(11, 30), 60)
    assert not await resolver.is_available(DOCTOR, MONDAY, time(8, 30), 30)


async def test_buffer_shrinks_neighbouring_slots(schedule_store, booking_store, monday_morning, clock, booking_factory):
    config = SchedulingConfig(min_lead_minutes=60, buffer_minutes=10)
    resolver = AvailabilityResolver(schedule_store, booking_store, config, clock=clock)
    await booking_store.insert_booking(booking_factory(time(10), time(10, 30)))
    assert starts(await resolver.resolve(DOCTOR, MONDAY)) == [time(9), time(10, 40), time(11, 10)]


async def test_blackout_replaced_by_an_edited_whole_day_opening(resolver, monday_morning, schedule_store):
    await schedule_store.upsert_exception(AvailabilityException(doctor_id=DOCTOR, date=MONDAY, is_available=False))
    partial = await schedule_store.upsert_exception(
        AvailabilityException(doctor_id=DOCTOR, date=MONDAY, start_time=time(13), end_time=time(14), is_available=False)
    )
    await schedule_store.upsert_exception(partial.model_copy(update={"start_time": None, "end_time": None, "is_available": True}))

    slots = await resolver.resolve(DOCTOR, MONDAY)
    assert slots[0].start_time == time(0)
    assert time(13) in starts(slots)


async def test_is_available_can_ignore_one_booking(resolver, monday_morning, booking_store, booking_factory):
    booking_id = await booking_store.insert_booking(booking_factory(time(10), time(10, 30)))
    assert not await resolver.is_available(DOCTOR, MONDAY, time(10, 15), 30)
    assert await resolver.is_available(DOCTOR, MONDAY, time(10, 15), 30, exclude=booking_id)
    assert not await resolver.is_available(DOCTOR, MONDAY, time(10, 15), 30, exclude=uuid.uuid4())
