import uuid
import datetime as dt
from datetime import time
from pydantic import BaseModel, Field

# ---- Records ----

class WeeklyRule(BaseModel):
    """Recurring availability; day_of_week 1=Monday..7=Sunday."""
    model_config = {"from_attributes": True}

    id: uuid.UUID | None = None
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool = True

    @property
    def interval(self) -> tuple[int, int]:
        return (self.start_time.hour * 60 + self.start_time.minute,
                self.end_time.hour * 60 + self.end_time.minute)

class AvailabilityException(BaseModel):
    """Date-scoped override; no start/end means the whole day."""
    model_config = {"from_attributes": True}

    id: uuid.UUID | None = None
    doctor_id: int
    date: dt.date
    start_time: time | None = None
    end_time: time | None = None
    is_available: bool = True
    reason: str | None = None

    @property
    def is_whole_day(self) -> bool:
        return self.start_time is None and self.end_time is None

    @property
    def interval(self) -> tuple[int, int]:
        return (self.start_time.hour * 60 + self.start_time.minute,
                self.end_time.hour * 60 + self.end_time.minute)

# ---- API payloads ----

class WeeklyRuleCreate(BaseModel):
    id: uuid.UUID | None = None
    doctor_id: int = Field(ge=1)
    day_of_week: int = Field(ge=1, le=7)
    start_time: time
    end_time: time
    is_available: bool = True

class WeeklyRuleOut(WeeklyRuleCreate):
    id: uuid.UUID

class ExceptionCreate(BaseModel):
    id: uuid.UUID | None = None
    doctor_id: int = Field(ge=1)
    date: dt.date
    start_time: time | None = None
    end_time: time | None = None
    is_available: bool = True
    reason: str | None = Field(default=None, max_length=255)

class ExceptionOut(ExceptionCreate):
    id: uuid.UUID
