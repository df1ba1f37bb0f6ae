from datetime import date
from fastapi import APIRouter, Depends
from medx360.api.deps import resolver
from medx360.core.security import require_scopes
from medx360.modules.availability.schemas import Slot, CalendarDay
from medx360.modules.availability.service import AvailabilityResolver

router = APIRouter()

# Slot search
@router.get("/slots", response_model=list[Slot], dependencies=[Depends(require_scopes("schedule:read"))])
async def search_slots(doctor_id: int, date: date, duration: int | None = None, service: AvailabilityResolver = Depends(resolver)):
    return await service.resolve(doctor_id, date, duration)

@router.get("/calendar", response_model=list[CalendarDay], dependencies=[Depends(require_scopes("schedule:read"))])
async def calendar(doctor_id: int, start: date, end: date, duration: int | None = None, service: AvailabilityResolver = Depends(resolver)):
    days = await service.resolve_range(doctor_id, start, end, duration)
    return [CalendarDay(date=d, slots=slots) for d, slots in days.items()]
