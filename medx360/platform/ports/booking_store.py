import uuid
from datetime import date, time
from typing import Iterable, Protocol, runtime_checkable
from medx360.modules.bookings.schemas import Booking

@runtime_checkable
class BookingStorePort(Protocol):
    async def get_bookings(
        self, doctor_id: int | None, start: date, end: date,
        statuses: Iterable[str] | None = None, clinic_id: int | None = None,
    ) -> list[Booking]: ...
    async def get_booking(self, booking_id: uuid.UUID) -> Booking: ...
    async def insert_booking(self, booking: Booking, buffer_minutes: int = 0) -> uuid.UUID:
        """Insert unless a live booking of that doctor+date overlaps; raise ConflictError otherwise."""
        ...
    async def update_status(self, booking_id: uuid.UUID, new_status: str) -> tuple[Booking, str]:
        """Returns the stored booking and the status it had before this call."""
        ...
    async def reschedule_booking(
        self, booking_id: uuid.UUID, doctor_id: int, day: date, start_time: time, end_time: time,
        buffer_minutes: int = 0,
    ) -> tuple[Booking, Booking]:
        """
        Move a live booking; overlap is checked against every other live booking
        of the target doctor+date. Returns (before, after).
        """
        ...
