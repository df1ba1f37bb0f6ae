from fastapi import Depends, Request
from medx360.core.config import SchedulingConfig
from medx360.modules.availability.service import AvailabilityResolver
from medx360.modules.bookings.repository import BookingRepository
from medx360.modules.bookings.service import BookingScheduler
from medx360.modules.events.notifier import BookingNotifier
from medx360.modules.schedules.repository import ScheduleRepository
from medx360.modules.schedules.service import ScheduleService

def scheduling_config(request: Request) -> SchedulingConfig:
    return request.app.state.scheduling_config

def schedule_store(request: Request) -> ScheduleRepository:
    return ScheduleRepository(request.app.state.sessions, timeout=request.app.state.scheduling_config.store_timeout_seconds)

def booking_store(request: Request) -> BookingRepository:
    return BookingRepository(request.app.state.sessions, timeout=request.app.state.scheduling_config.store_timeout_seconds)

def notifier(request: Request) -> BookingNotifier:
    return request.app.state.notifier

def schedule_svc(store: ScheduleRepository = Depends(schedule_store)) -> ScheduleService:
    return ScheduleService(store)

def resolver(
    schedules: ScheduleRepository = Depends(schedule_store),
    bookings: BookingRepository = Depends(booking_store),
    config: SchedulingConfig = Depends(scheduling_config),
) -> AvailabilityResolver:
    return AvailabilityResolver(schedules, bookings, config)

def scheduler(
    res: AvailabilityResolver = Depends(resolver),
    bookings: BookingRepository = Depends(booking_store),
    config: SchedulingConfig = Depends(scheduling_config),
    events: BookingNotifier = Depends(notifier),
) -> BookingScheduler:
    return BookingScheduler(res, bookings, config, events)
