import datetime as dt
from datetime import time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Date, Time, Text, CheckConstraint, Index
from medx360.core.base import Base, TimestampedMixin

class BookingRow(Base, TimestampedMixin):
    __tablename__ = "bookings"

    doctor_id: Mapped[int] = mapped_column(Integer)
    clinic_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hospital_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    service_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Patient identity (no patient table in this service)
    patient_name: Mapped[str] = mapped_column(String(255))
    patient_email: Mapped[str | None] = mapped_column(String(100), nullable=True)
    patient_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    patient_dob: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    patient_gender: Mapped[str | None] = mapped_column(String(8), nullable=True)  # male, female, other

    # Scheduling
    appointment_date: Mapped[dt.date] = mapped_column(Date)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=30)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending, confirmed, cancelled, completed, no_show
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_booking_time_order"),
        Index("ix_bookings_doctor_date_status", "doctor_id", "appointment_date", "status"),
    )
