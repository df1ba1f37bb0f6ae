import datetime as dt
from datetime import time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Date, Time, Boolean, CheckConstraint, Index
from medx360.core.base import Base, TimestampedMixin

# Recurring schedule: day_of_week 1=Mon..7=Sun
class WeeklyRuleRow(Base, TimestampedMixin):
    __tablename__ = "weekly_rules"

    doctor_id: Mapped[int] = mapped_column(Integer, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_weekly_rule_time_order"),
        CheckConstraint("day_of_week BETWEEN 1 AND 7", name="ck_weekly_rule_dow"),
        Index("ix_weekly_rules_doctor_dow", "doctor_id", "day_of_week"),
    )

# Date overrides; null start/end means the whole day
class ExceptionRow(Base, TimestampedMixin):
    __tablename__ = "availability_exceptions"

    doctor_id: Mapped[int] = mapped_column(Integer, index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_availability_exceptions_doctor_date", "doctor_id", "date"),
    )
