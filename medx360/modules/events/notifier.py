import asyncio
import logging
from datetime import datetime, timezone
from medx360.modules.bookings.schemas import Booking
from medx360.platform.ports.event_bus import EventBusPort

log = logging.getLogger("event.notifier")

TOPIC = "medx360.bookings"

class BookingNotifier:
    """
    Fire-and-forget fan-out of booking events. Publishing runs in a
    background task; a failed publish is logged and dropped.
    """

    def __init__(self, bus: EventBusPort):
        self.bus = bus
        self._pending: set[asyncio.Task] = set()

    def notify(self, event_type: str, booking: Booking, **extra) -> None:
        value = {
            "event_type": event_type,
            "booking_id": str(booking.id),
            "doctor_id": booking.doctor_id,
            "appointment_date": booking.appointment_date.isoformat(),
            "start_time": booking.start_time.isoformat(timespec="minutes"),
            "end_time": booking.end_time.isoformat(timespec="minutes"),
            "status": booking.status,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
            **extra,
        }
        task = asyncio.create_task(self.bus.publish(topic=TOPIC, key=str(booking.id), value=value))
        self._pending.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Publish failed: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for in-flight publishes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
