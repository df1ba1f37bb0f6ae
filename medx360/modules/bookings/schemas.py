import uuid
import datetime as dt
from datetime import time
from typing import Literal
from pydantic import BaseModel, EmailStr, Field, field_validator

BookingStatus = Literal["pending", "confirmed", "cancelled", "completed", "no_show"]

# from -> allowed next states
VALID_NEXT: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled", "no_show"},
    "cancelled": set(),
    "completed": set(),
    "no_show": set(),
}

PHONE_PATTERN = r"^\+?[\d\s\-()]+$"

# ---- Records ----

class PatientInfo(BaseModel):
    patient_name: str = Field(min_length=1, max_length=255)
    patient_email: EmailStr | None = None
    patient_phone: str | None = Field(default=None, max_length=30, pattern=PHONE_PATTERN)
    patient_dob: dt.date | None = None
    patient_gender: Literal["male", "female", "other"] | None = None
    clinic_id: int | None = None
    hospital_id: int | None = None
    service_id: int | None = None
    notes: str | None = None

    @field_validator("patient_phone")
    @classmethod
    def _phone_digits(cls, v):
        # separators are free; the number itself is 7-20 digits
        if v is not None and not 7 <= sum(c.isdigit() for c in v) <= 20:
            raise ValueError("patient phone number must have 7 to 20 digits")
        return v

    @field_validator("patient_email")
    @classmethod
    def _email_fits(cls, v):
        if v is not None and len(v) > 100:
            raise ValueError("patient email must be at most 100 characters")
        return v

class Booking(PatientInfo):
    model_config = {"from_attributes": True}

    id: uuid.UUID | None = None
    doctor_id: int
    appointment_date: dt.date
    start_time: time
    end_time: time
    duration_minutes: int
    status: BookingStatus = "pending"
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @property
    def interval(self) -> tuple[int, int]:
        return (self.start_time.hour * 60 + self.start_time.minute,
                self.end_time.hour * 60 + self.end_time.minute)

# ---- API payloads ----

class BookingCreate(PatientInfo):
    doctor_id: int = Field(ge=1)
    appointment_date: dt.date
    start_time: time
    duration_minutes: int | None = Field(default=None, ge=5, le=24*60-1)

class BookingOut(Booking):
    id: uuid.UUID

class BookingReschedule(BaseModel):
    """Moves a live booking; omitted fields keep their current value."""
    appointment_date: dt.date
    start_time: time
    duration_minutes: int | None = Field(default=None, ge=5, le=24*60-1)
    doctor_id: int | None = Field(default=None, ge=1)
