import datetime as dt
from datetime import time
from pydantic import BaseModel

class Slot(BaseModel):
    model_config = {"frozen": True}

    doctor_id: int
    date: dt.date
    start_time: time
    end_time: time

class CalendarDay(BaseModel):
    date: dt.date
    slots: list[Slot]
