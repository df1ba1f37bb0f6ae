import uuid
import logging
from datetime import date, datetime, time, timezone
from typing import Iterable
from sqlalchemy import select, insert, update, exists, literal, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased
from medx360.core.db import advisory_xact_lock
from medx360.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from medx360.core.timeouts import bounded
from medx360.modules.availability.policy import OCCUPYING_STATUSES, MINUTES_PER_DAY, occupies_slot, to_minutes, to_time, widen
from medx360.modules.bookings.models import BookingRow
from medx360.modules.bookings.schemas import Booking
from medx360.modules.bookings.transitions import check_transition

logger = logging.getLogger(__name__)

def _lock_key(doctor_id: int, day: date) -> str:
    return f"medx360:booking:{doctor_id}:{day.isoformat()}"

def _live_overlapping(model, doctor_id: int, day: date, interval: tuple[int, int], buffer_minutes: int) -> list:
    lo, hi = widen(interval, buffer_minutes)
    cond = [
        model.doctor_id == doctor_id,
        model.appointment_date == day,
        model.status.in_(sorted(OCCUPYING_STATUSES)),
        model.end_time > to_time(lo),
    ]
    if hi < MINUTES_PER_DAY:
        cond.append(model.start_time < to_time(hi))
    return cond

class BookingRepository:
    """
    SQL booking store.

    `insert_booking` and `reschedule_booking` are the only guards against
    double booking: the overlap check and the write are one statement, and on
    PostgreSQL that statement runs under a transaction-scoped advisory lock
    per doctor+date so that concurrent writes for the same day are serialized.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self.sessions = sessions
        self.timeout = timeout

    async def get_bookings(
        self, doctor_id: int | None, start: date, end: date,
        statuses: Iterable[str] | None = None, clinic_id: int | None = None,
    ) -> list[Booking]:
        return await bounded(self._get_bookings(doctor_id, start, end, statuses, clinic_id), self.timeout, "get_bookings")

    async def _get_bookings(self, doctor_id, start, end, statuses, clinic_id) -> list[Booking]:
        cond = [BookingRow.appointment_date >= start, BookingRow.appointment_date <= end]
        if doctor_id is not None:
            cond.append(BookingRow.doctor_id == doctor_id)
        if clinic_id is not None:
            cond.append(BookingRow.clinic_id == clinic_id)
        if statuses is not None:
            cond.append(BookingRow.status.in_(list(statuses)))
        async with self.sessions() as s:
            res = await s.execute(
                select(BookingRow).where(and_(*cond)).order_by(BookingRow.appointment_date, BookingRow.start_time)
            )
            return [Booking.model_validate(r) for r in res.scalars().all()]

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        return await bounded(self._get_booking(booking_id), self.timeout, "get_booking")

    async def _get_booking(self, booking_id: uuid.UUID) -> Booking:
        async with self.sessions() as s:
            obj = await s.get(BookingRow, booking_id)
            if obj is None:
                raise NotFoundError(f"booking {booking_id} not found")
            return Booking.model_validate(obj)

    async def insert_booking(self, booking: Booking, buffer_minutes: int = 0) -> uuid.UUID:
        return await bounded(self._insert_booking(booking, buffer_minutes), self.timeout, "insert_booking")

    async def _insert_booking(self, booking: Booking, buffer_minutes: int) -> uuid.UUID:
        live = _live_overlapping(BookingRow, booking.doctor_id, booking.appointment_date, booking.interval, buffer_minutes)

        now = datetime.now(timezone.utc)
        new_id = booking.id or uuid.uuid4()
        values = booking.model_dump(exclude={"id", "created_at", "updated_at"})
        values.update(id=new_id, created_at=now, updated_at=now)
        table = BookingRow.__table__
        row = select(*[literal(v, table.c[k].type) for k, v in values.items()]).where(
            ~exists(select(BookingRow.id).where(and_(*live)))
        )

        async with self.sessions() as s, s.begin():
            await advisory_xact_lock(s, _lock_key(booking.doctor_id, booking.appointment_date))
            res = await s.execute(insert(BookingRow).from_select(list(values), row))
            if res.rowcount != 1:
                raise ConflictError(
                    f"doctor {booking.doctor_id} already booked around "
                    f"{booking.appointment_date} {booking.start_time:%H:%M}-{booking.end_time:%H:%M}"
                )
        logger.info("booking %s inserted for doctor %s on %s %s",
                    new_id, booking.doctor_id, booking.appointment_date, booking.start_time)
        return new_id

    async def reschedule_booking(
        self, booking_id: uuid.UUID, doctor_id: int, day: date, start_time: time, end_time: time,
        buffer_minutes: int = 0,
    ) -> tuple[Booking, Booking]:
        return await bounded(
            self._reschedule_booking(booking_id, doctor_id, day, start_time, end_time, buffer_minutes),
            self.timeout, "reschedule_booking",
        )

    async def _reschedule_booking(self, booking_id, doctor_id, day, start_time, end_time, buffer_minutes) -> tuple[Booking, Booking]:
        interval = (to_minutes(start_time), to_minutes(end_time))
        other = aliased(BookingRow)
        clash = _live_overlapping(other, doctor_id, day, interval, buffer_minutes)
        clash.append(other.id != booking_id)

        async with self.sessions() as s, s.begin():
            await advisory_xact_lock(s, _lock_key(doctor_id, day))
            res = await s.execute(select(BookingRow).where(BookingRow.id == booking_id).with_for_update())
            obj = res.scalar_one_or_none()
            if obj is None:
                raise NotFoundError(f"booking {booking_id} not found")
            if not occupies_slot(obj.status):
                raise InvalidTransitionError(obj.status, "rescheduled")
            before = Booking.model_validate(obj)

            res = await s.execute(
                update(BookingRow)
                .where(
                    BookingRow.id == booking_id,
                    BookingRow.status.in_(sorted(OCCUPYING_STATUSES)),
                    ~exists(select(other.id).where(and_(*clash))),
                )
                .values(
                    doctor_id=doctor_id,
                    appointment_date=day,
                    start_time=start_time,
                    end_time=end_time,
                    duration_minutes=interval[1] - interval[0],
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise ConflictError(f"doctor {doctor_id} already booked around {day} {start_time:%H:%M}-{end_time:%H:%M}")
            await s.refresh(obj)
            after = Booking.model_validate(obj)
        logger.info("booking %s moved from %s %s to doctor %s on %s %s",
                    booking_id, before.appointment_date, before.start_time, doctor_id, day, start_time)
        return before, after

    async def update_status(self, booking_id: uuid.UUID, new_status: str) -> tuple[Booking, str]:
        return await bounded(self._update_status(booking_id, new_status), self.timeout, "update_status")

    async def _update_status(self, booking_id: uuid.UUID, new_status: str) -> tuple[Booking, str]:
        async with self.sessions() as s, s.begin():
            res = await s.execute(select(BookingRow).where(BookingRow.id == booking_id).with_for_update())
            obj = res.scalar_one_or_none()
            if obj is None:
                raise NotFoundError(f"booking {booking_id} not found")
            prev = obj.status
            if check_transition(prev, new_status):
                obj.status = new_status
                await s.flush()
                logger.info("booking %s %s -> %s", booking_id, prev, new_status)
            return Booking.model_validate(obj), prev
