import asyncio
import uuid
from collections import defaultdict
from datetime import date, datetime, time, timezone
from typing import Iterable
from medx360.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from medx360.modules.availability.policy import occupies_slot, overlaps, to_minutes, widen
from medx360.modules.bookings.schemas import Booking
from medx360.modules.bookings.transitions import check_transition
from medx360.modules.schedules.schemas import WeeklyRule, AvailabilityException
from medx360.modules.schedules.validation import validate_weekly_rule, validate_exception
from medx360.platform.ports.booking_store import BookingStorePort
from medx360.platform.ports.schedule_store import ScheduleStorePort

class InMemoryScheduleStore(ScheduleStorePort):
    """Process-local schedule store for tests and single-process embedding."""

    def __init__(self):
        self._rules: dict[uuid.UUID, WeeklyRule] = {}
        self._exceptions: dict[uuid.UUID, AvailabilityException] = {}

    async def get_weekly_rules(self, doctor_id: int) -> list[WeeklyRule]:
        rules = [r for r in self._rules.values() if r.doctor_id == doctor_id]
        return sorted(rules, key=lambda r: (r.day_of_week, r.start_time))

    async def get_exceptions(self, doctor_id: int, start: date, end: date) -> list[AvailabilityException]:
        found = [x for x in self._exceptions.values() if x.doctor_id == doctor_id and start <= x.date <= end]
        return sorted(found, key=lambda x: x.date)

    async def upsert_weekly_rule(self, rule: WeeklyRule) -> WeeklyRule:
        existing = self._rules.get(rule.id) if rule.id else None
        if existing is not None and existing.doctor_id != rule.doctor_id:
            raise NotFoundError(f"weekly rule {rule.id} not found for doctor {rule.doctor_id}")
        validate_weekly_rule(rule, await self.get_weekly_rules(rule.doctor_id))
        saved = rule.model_copy(update={"id": rule.id or uuid.uuid4()})
        self._rules[saved.id] = saved
        return saved

    async def upsert_exception(self, exception: AvailabilityException) -> AvailabilityException:
        validate_exception(exception)
        target = exception.id
        existing = self._exceptions.get(target) if target else None
        if existing is not None and existing.doctor_id != exception.doctor_id:
            raise NotFoundError(f"exception {target} not found for doctor {exception.doctor_id}")
        same_day_whole = [
            x.id for x in self._exceptions.values()
            if x.doctor_id == exception.doctor_id and x.date == exception.date and x.is_whole_day
        ]
        if existing is None and exception.is_whole_day and same_day_whole:
            target = same_day_whole[0]
        saved = exception.model_copy(update={"id": target or uuid.uuid4()})
        if saved.is_whole_day:
            for other in same_day_whole:
                if other != saved.id:
                    del self._exceptions[other]
        self._exceptions[saved.id] = saved
        return saved

    async def delete_weekly_rule(self, doctor_id: int, rule_id: uuid.UUID) -> None:
        rule = self._rules.get(rule_id)
        if rule is None or rule.doctor_id != doctor_id:
            raise NotFoundError(f"weekly rule {rule_id} not found for doctor {doctor_id}")
        del self._rules[rule_id]

    async def delete_exception(self, doctor_id: int, exception_id: uuid.UUID) -> None:
        x = self._exceptions.get(exception_id)
        if x is None or x.doctor_id != doctor_id:
            raise NotFoundError(f"exception {exception_id} not found for doctor {doctor_id}")
        del self._exceptions[exception_id]


class InMemoryBookingStore(BookingStorePort):
    """
    Process-local booking store. Check and insert for one doctor+date run
    under a per-day asyncio.Lock, which is as strong as the SQL store's
    advisory lock within a single event loop.
    """

    def __init__(self):
        self._bookings: dict[uuid.UUID, Booking] = {}
        self._locks: dict[tuple[int, date], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_bookings(
        self, doctor_id: int | None, start: date, end: date,
        statuses: Iterable[str] | None = None, clinic_id: int | None = None,
    ) -> list[Booking]:
        wanted = set(statuses) if statuses is not None else None
        found = [
            b for b in self._bookings.values()
            if start <= b.appointment_date <= end
            and (doctor_id is None or b.doctor_id == doctor_id)
            and (clinic_id is None or b.clinic_id == clinic_id)
            and (wanted is None or b.status in wanted)
        ]
        return sorted(found, key=lambda b: (b.appointment_date, b.start_time))

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        b = self._bookings.get(booking_id)
        if b is None:
            raise NotFoundError(f"booking {booking_id} not found")
        return b

    async def insert_booking(self, booking: Booking, buffer_minutes: int = 0) -> uuid.UUID:
        key = (booking.doctor_id, booking.appointment_date)
        async with self._locks[key]:
            self._check_free(key, booking.interval, buffer_minutes)
            # let other coroutines run between check and write
            await asyncio.sleep(0)
            now = datetime.now(timezone.utc)
            saved = booking.model_copy(update={"id": booking.id or uuid.uuid4(), "created_at": now, "updated_at": now})
            self._bookings[saved.id] = saved
            return saved.id

    def _check_free(self, key: tuple[int, date], interval: tuple[int, int], buffer_minutes: int, ignore: uuid.UUID | None = None) -> None:
        padded = widen(interval, buffer_minutes)
        for other in self._bookings.values():
            if other.id == ignore or (other.doctor_id, other.appointment_date) != key or not occupies_slot(other.status):
                continue
            if overlaps(padded, other.interval):
                raise ConflictError(f"doctor {key[0]} already booked at {other.start_time:%H:%M}")

    async def reschedule_booking(
        self, booking_id: uuid.UUID, doctor_id: int, day: date, start_time: time, end_time: time,
        buffer_minutes: int = 0,
    ) -> tuple[Booking, Booking]:
        key = (doctor_id, day)
        async with self._locks[key]:
            before = await self.get_booking(booking_id)
            if not occupies_slot(before.status):
                raise InvalidTransitionError(before.status, "rescheduled")
            interval = (to_minutes(start_time), to_minutes(end_time))
            self._check_free(key, interval, buffer_minutes, ignore=booking_id)
            after = before.model_copy(update={
                "doctor_id": doctor_id,
                "appointment_date": day,
                "start_time": start_time,
                "end_time": end_time,
                "duration_minutes": interval[1] - interval[0],
                "updated_at": datetime.now(timezone.utc),
            })
            self._bookings[booking_id] = after
            return before, after

    async def update_status(self, booking_id: uuid.UUID, new_status: str) -> tuple[Booking, str]:
        b = await self.get_booking(booking_id)
        if not check_transition(b.status, new_status):
            return b, b.status
        updated = b.model_copy(update={"status": new_status, "updated_at": datetime.now(timezone.utc)})
        self._bookings[booking_id] = updated
        return updated, b.status
