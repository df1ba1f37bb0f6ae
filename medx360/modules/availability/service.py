import uuid
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable
from zoneinfo import ZoneInfo
from medx360.core.config import SchedulingConfig
from medx360.core.errors import ValidationError
from medx360.modules.availability import policy
from medx360.modules.availability.policy import Interval
from medx360.modules.availability.schemas import Slot
from medx360.platform.ports.booking_store import BookingStorePort
from medx360.platform.ports.schedule_store import ScheduleStorePort

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 62

Clock = Callable[[], datetime]

def system_clock(tz: str) -> Clock:
    zone = ZoneInfo(tz)
    return lambda: datetime.now(zone)

class AvailabilityResolver:
    """
    Read-only computation of a doctor's open slots.

    The result is advisory: it is computed from a snapshot of the stores and
    says nothing about what another request may commit a moment later. Only
    the booking store's constrained insert decides who gets a slot.
    """

    def __init__(self, schedules: ScheduleStorePort, bookings: BookingStorePort, config: SchedulingConfig, clock: Clock | None = None):
        self.schedules = schedules
        self.bookings = bookings
        self.config = config
        self.clock = clock or system_clock(config.timezone)

    def _local_now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(ZoneInfo(self.config.timezone)).replace(tzinfo=None)
        return now

    def _duration(self, duration_minutes: int | None) -> int:
        d = self.config.default_slot_minutes if duration_minutes is None else duration_minutes
        if not 5 <= d < policy.MINUTES_PER_DAY:
            raise ValidationError({"duration_minutes": "must be between 5 and 1439 minutes"})
        return d

    async def available_intervals(self, doctor_id: int, day: date, exclude: uuid.UUID | None = None) -> list[Interval]:
        """
        Open time on `day` after the schedule, exceptions and live bookings
        (buffer included). `exclude` names a booking that should not count as busy.
        """
        rules = await self.schedules.get_weekly_rules(doctor_id)
        exceptions = await self.schedules.get_exceptions(doctor_id, day, day)
        booked = await self.bookings.get_bookings(doctor_id, day, day, policy.OCCUPYING_STATUSES)
        booked = [b for b in booked if exclude is None or b.id != exclude]
        return self._combine(day, rules, exceptions, booked)

    def _combine(self, day: date, rules, exceptions, booked) -> list[Interval]:
        dow = day.isoweekday()
        todays = [r for r in rules if r.day_of_week == dow]
        base = policy.subtract(
            [r.interval for r in todays if r.is_available],
            [r.interval for r in todays if not r.is_available],
        )
        open_ = policy.apply_exceptions(base, [x for x in exceptions if x.date == day])
        busy = [policy.widen(b.interval, self.config.buffer_minutes) for b in booked if b.appointment_date == day]
        return policy.subtract(open_, busy)

    async def resolve(self, doctor_id: int, day: date, duration_minutes: int | None = None) -> list[Slot]:
        duration = self._duration(duration_minutes)
        intervals = await self.available_intervals(doctor_id, day)
        return self._slots(doctor_id, day, intervals, duration)

    def _slots(self, doctor_id: int, day: date, intervals: list[Interval], duration: int) -> list[Slot]:
        not_before = policy.earliest_start(day, self._local_now(), self.config.min_lead_minutes)
        return [
            Slot(doctor_id=doctor_id, date=day, start_time=policy.to_time(s), end_time=policy.to_time(e))
            for s, e in policy.discretize(intervals, duration, not_before)
        ]

    async def resolve_range(self, doctor_id: int, start: date, end: date, duration_minutes: int | None = None) -> dict[date, list[Slot]]:
        """Slots per date for an inclusive range; fetches each store once."""
        if end < start:
            raise ValidationError({"end": "end must not be before start"})
        days = (end - start).days + 1
        if days > MAX_RANGE_DAYS:
            raise ValidationError({"end": f"range is limited to {MAX_RANGE_DAYS} days"})
        duration = self._duration(duration_minutes)

        rules = await self.schedules.get_weekly_rules(doctor_id)
        exceptions = await self.schedules.get_exceptions(doctor_id, start, end)
        booked = await self.bookings.get_bookings(doctor_id, start, end, policy.OCCUPYING_STATUSES)

        out: dict[date, list[Slot]] = {}
        for i in range(days):
            day = start + timedelta(days=i)
            out[day] = self._slots(doctor_id, day, self._combine(day, rules, exceptions, booked), duration)
        logger.debug("resolved %d days for doctor %s", days, doctor_id)
        return out

    async def is_available(
        self, doctor_id: int, day: date, start_time: time, duration_minutes: int, exclude: uuid.UUID | None = None,
    ) -> bool:
        """Whether [start, start+duration) lies inside one open interval and honours the lead time."""
        s = policy.to_minutes(start_time)
        wanted = (s, s + duration_minutes)
        if s < policy.earliest_start(day, self._local_now(), self.config.min_lead_minutes):
            return False
        intervals = await self.available_intervals(doctor_id, day, exclude)
        return any(policy.contains(i, wanted) for i in intervals)

