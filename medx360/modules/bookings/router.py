import uuid
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from medx360.api.deps import scheduler
from medx360.core.security import Principal, require_scopes
from medx360.modules.bookings.schemas import BookingCreate, BookingOut, BookingReschedule, PatientInfo
from medx360.modules.bookings.service import BookingScheduler

router = APIRouter()

@router.post("", response_model=BookingOut, status_code=201, dependencies=[Depends(require_scopes("bookings:write"))])
async def book_slot(payload: BookingCreate, service: BookingScheduler = Depends(scheduler)):
    patient = PatientInfo(**payload.model_dump(include=set(PatientInfo.model_fields)))
    return await service.book_slot(payload.doctor_id, payload.appointment_date, payload.start_time, payload.duration_minutes, patient)

@router.get("", response_model=list[BookingOut])
async def list_bookings(
    start: date,
    end: date,
    doctor_id: int | None = None,
    clinic_id: int | None = None,
    status: list[str] | None = Query(default=None),
    principal: Principal = Depends(require_scopes("bookings:read")),
    service: BookingScheduler = Depends(scheduler),
):
    # clinic-bound callers only ever see their own clinic
    if principal.clinic_id is not None:
        if clinic_id is not None and clinic_id != principal.clinic_id:
            raise HTTPException(status_code=403, detail="Bookings of another clinic")
        clinic_id = principal.clinic_id
    return await service.list_bookings(doctor_id, start, end, status, clinic_id)

@router.get("/{booking_id}", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:read"))])
async def get_booking(booking_id: uuid.UUID, service: BookingScheduler = Depends(scheduler)):
    return await service.get_booking(booking_id)

@router.patch("/{booking_id}", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:write"))])
async def reschedule_booking(booking_id: uuid.UUID, payload: BookingReschedule, service: BookingScheduler = Depends(scheduler)):
    return await service.reschedule_booking(
        booking_id, payload.appointment_date, payload.start_time, payload.duration_minutes, payload.doctor_id
    )

@router.post("/{booking_id}/confirm", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:write"))])
async def confirm_booking(booking_id: uuid.UUID, service: BookingScheduler = Depends(scheduler)):
    return await service.confirm_booking(booking_id)

@router.post("/{booking_id}/cancel", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:write"))])
async def cancel_booking(booking_id: uuid.UUID, service: BookingScheduler = Depends(scheduler)):
    return await service.cancel_booking(booking_id)

@router.post("/{booking_id}/complete", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:write"))])
async def complete_booking(booking_id: uuid.UUID, service: BookingScheduler = Depends(scheduler)):
    return await service.complete_booking(booking_id)

@router.post("/{booking_id}/no-show", response_model=BookingOut, dependencies=[Depends(require_scopes("bookings:write"))])
async def mark_no_show(booking_id: uuid.UUID, service: BookingScheduler = Depends(scheduler)):
    return await service.mark_no_show(booking_id)
