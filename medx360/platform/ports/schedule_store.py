import uuid
from datetime import date
from typing import Protocol, runtime_checkable
from medx360.modules.schedules.schemas import WeeklyRule, AvailabilityException

@runtime_checkable
class ScheduleStorePort(Protocol):
    async def get_weekly_rules(self, doctor_id: int) -> list[WeeklyRule]: ...
    async def get_exceptions(self, doctor_id: int, start: date, end: date) -> list[AvailabilityException]: ...
    async def upsert_weekly_rule(self, rule: WeeklyRule) -> WeeklyRule: ...
    async def upsert_exception(self, exception: AvailabilityException) -> AvailabilityException: ...
    async def delete_weekly_rule(self, doctor_id: int, rule_id: uuid.UUID) -> None: ...
    async def delete_exception(self, doctor_id: int, exception_id: uuid.UUID) -> None: ...
