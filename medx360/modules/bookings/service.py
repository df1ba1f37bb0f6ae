import asyncio
import logging
import uuid
from datetime import date, time
from typing import Awaitable, Callable, TypeVar
from medx360.core.config import SchedulingConfig
from medx360.core.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, SlotUnavailableError, StorageTimeoutError, ValidationError,
)
from medx360.modules.availability import policy
from medx360.modules.availability.service import AvailabilityResolver
from medx360.modules.bookings.schemas import Booking, PatientInfo
from medx360.modules.events.notifier import BookingNotifier
from medx360.platform.ports.booking_store import BookingStorePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

class BookingScheduler:
    """
    Commits booking requests and drives status transitions.

    The resolver check in `book_slot` only rejects requests early; whether two
    concurrent requests for the same interval can both succeed is decided by
    `BookingStorePort.insert_booking` (or `reschedule_booking`), never here.
    """

    def __init__(
        self,
        resolver: AvailabilityResolver,
        bookings: BookingStorePort,
        config: SchedulingConfig,
        notifier: BookingNotifier | None = None,
    ):
        self.resolver = resolver
        self.bookings = bookings
        self.config = config
        self.notifier = notifier

    async def _retrying(self, what: str, op: Callable[[], Awaitable[T]]) -> T:
        try:
            return await op()
        except StorageTimeoutError:
            logger.warning("%s timed out; retrying once in %.2fs", what, self.config.retry_backoff_seconds)
            await asyncio.sleep(self.config.retry_backoff_seconds)
            return await op()

    def _notify(self, event_type: str, booking: Booking, **extra) -> None:
        if self.notifier is not None:
            self.notifier.notify(event_type, booking, **extra)

    @staticmethod
    def _window(start_time: time, duration: int) -> tuple[int, int]:
        if not 5 <= duration < policy.MINUTES_PER_DAY:
            raise ValidationError({"duration_minutes": "must be between 5 and 1439 minutes"})
        start = policy.to_minutes(start_time)
        end = start + duration
        if end >= policy.MINUTES_PER_DAY:
            raise ValidationError({"duration_minutes": "appointment must end before midnight"})
        return start, end

    # ---- Booking ----
    async def book_slot(
        self,
        doctor_id: int,
        day: date,
        start_time: time,
        duration_minutes: int | None,
        patient: PatientInfo,
    ) -> Booking:
        duration = self.config.default_slot_minutes if duration_minutes is None else duration_minutes
        start, end = self._window(start_time, duration)

        ok = await self._retrying(
            "availability check", lambda: self.resolver.is_available(doctor_id, day, start_time, duration)
        )
        if not ok:
            raise SlotUnavailableError(f"doctor {doctor_id} is not available on {day} at {start_time:%H:%M} for {duration} minutes")

        booking = Booking(
            **patient.model_dump(),
            id=uuid.uuid4(),
            doctor_id=doctor_id,
            appointment_date=day,
            start_time=policy.to_time(start),
            end_time=policy.to_time(end),
            duration_minutes=duration,
            status="pending",
        )
        saved = await self._insert(booking)
        logger.info("booked %s for doctor %s on %s %s-%s", saved.id, doctor_id, day, saved.start_time, saved.end_time)
        self._notify("BOOKING_CREATED", saved)
        return saved

    async def _insert(self, booking: Booking) -> Booking:
        retried = False
        try:
            try:
                booking_id = await self.bookings.insert_booking(booking, self.config.buffer_minutes)
            except StorageTimeoutError:
                logger.warning("insert_booking timed out; retrying once in %.2fs", self.config.retry_backoff_seconds)
                await asyncio.sleep(self.config.retry_backoff_seconds)
                retried = True
                booking_id = await self.bookings.insert_booking(booking, self.config.buffer_minutes)
        except ConflictError as e:
            # the timed-out attempt may have committed; then the retry collided with our own row
            if retried:
                try:
                    return await self.bookings.get_booking(booking.id)
                except NotFoundError:
                    pass
            logger.info("slot taken concurrently for doctor %s on %s at %s",
                        booking.doctor_id, booking.appointment_date, booking.start_time)
            raise SlotUnavailableError(str(e)) from e
        return await self._retrying("get_booking", lambda: self.bookings.get_booking(booking_id))

    # ---- Transitions ----
    async def _transition(self, booking_id: uuid.UUID, status: str) -> Booking:
        after, previous = await self._retrying("update_status", lambda: self.bookings.update_status(booking_id, status))
        if previous != after.status:
            self._notify("BOOKING_STATUS_CHANGED", after, previous_status=previous)
        return after

    async def cancel_booking(self, booking_id: uuid.UUID) -> Booking:
        """Frees the interval; the resolver drops cancelled bookings on its next read."""
        return await self._transition(booking_id, "cancelled")

    async def confirm_booking(self, booking_id: uuid.UUID) -> Booking:
        return await self._transition(booking_id, "confirmed")

    async def complete_booking(self, booking_id: uuid.UUID) -> Booking:
        return await self._transition(booking_id, "completed")

    async def mark_no_show(self, booking_id: uuid.UUID) -> Booking:
        return await self._transition(booking_id, "no_show")

    # ---- Reschedule ----
    async def reschedule_booking(
        self,
        booking_id: uuid.UUID,
        day: date,
        start_time: time,
        duration_minutes: int | None = None,
        doctor_id: int | None = None,
    ) -> Booking:
        """
        Move a pending or confirmed booking. The booking's own interval does
        not count against the new one; status and patient details are kept.
        """
        current = await self.get_booking(booking_id)
        if not policy.occupies_slot(current.status):
            raise InvalidTransitionError(current.status, "rescheduled")
        doctor = current.doctor_id if doctor_id is None else doctor_id
        duration = current.duration_minutes if duration_minutes is None else duration_minutes
        start, end = self._window(start_time, duration)

        ok = await self._retrying(
            "availability check",
            lambda: self.resolver.is_available(doctor, day, start_time, duration, exclude=booking_id),
        )
        if not ok:
            raise SlotUnavailableError(f"doctor {doctor} is not available on {day} at {start_time:%H:%M} for {duration} minutes")

        try:
            before, after = await self._retrying(
                "reschedule_booking",
                lambda: self.bookings.reschedule_booking(
                    booking_id, doctor, day, policy.to_time(start), policy.to_time(end), self.config.buffer_minutes
                ),
            )
        except ConflictError as e:
            raise SlotUnavailableError(str(e)) from e
        self._notify(
            "BOOKING_RESCHEDULED", after,
            previous_doctor_id=before.doctor_id,
            previous_date=before.appointment_date.isoformat(),
            previous_start_time=before.start_time.isoformat(timespec="minutes"),
        )
        return after

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        return await self._retrying("get_booking", lambda: self.bookings.get_booking(booking_id))

    async def list_bookings(
        self,
        doctor_id: int | None,
        start: date,
        end: date,
        statuses: list[str] | None = None,
        clinic_id: int | None = None,
    ) -> list[Booking]:
        if end < start:
            raise ValidationError({"end": "end must not be before start"})
        if doctor_id is None and clinic_id is None:
            raise ValidationError({"doctor_id": "doctor_id or clinic_id is required"})
        return await self._retrying(
            "get_bookings", lambda: self.bookings.get_bookings(doctor_id, start, end, statuses, clinic_id)
        )
