from fastapi import APIRouter
from medx360.modules.schedules.router import router as schedules_router
from medx360.modules.availability.router import router as availability_router
from medx360.modules.bookings.router import router as bookings_router

api_router = APIRouter()
api_router.include_router(schedules_router, prefix="/schedules", tags=["schedules"])
api_router.include_router(availability_router, prefix="/availability", tags=["availability"])
api_router.include_router(bookings_router, prefix="/bookings", tags=["bookings"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
