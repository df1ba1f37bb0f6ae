import uuid
import logging
from datetime import date
from medx360.core.errors import ValidationError
from medx360.modules.schedules.schemas import (
    WeeklyRule, AvailabilityException, WeeklyRuleCreate, ExceptionCreate,
)
from medx360.platform.ports.schedule_store import ScheduleStorePort

logger = logging.getLogger(__name__)

class ScheduleService:
    def __init__(self, store: ScheduleStorePort):
        self.store = store

    async def save_weekly_rule(self, payload: WeeklyRuleCreate) -> WeeklyRule:
        rule = await self.store.upsert_weekly_rule(WeeklyRule(**payload.model_dump()))
        logger.info("doctor %s: weekly rule %s day=%s %s-%s available=%s", rule.doctor_id, rule.id,
                    rule.day_of_week, rule.start_time, rule.end_time, rule.is_available)
        return rule

    async def list_weekly_rules(self, doctor_id: int) -> list[WeeklyRule]:
        return await self.store.get_weekly_rules(doctor_id)

    async def delete_weekly_rule(self, doctor_id: int, rule_id: uuid.UUID) -> None:
        await self.store.delete_weekly_rule(doctor_id, rule_id)

    async def save_exception(self, payload: ExceptionCreate) -> AvailabilityException:
        x = await self.store.upsert_exception(AvailabilityException(**payload.model_dump()))
        logger.info("doctor %s: exception %s on %s available=%s", x.doctor_id, x.id, x.date, x.is_available)
        return x

    async def list_exceptions(self, doctor_id: int, start: date, end: date) -> list[AvailabilityException]:
        if end < start:
            raise ValidationError({"end": "end must not be before start"})
        return await self.store.get_exceptions(doctor_id, start, end)

    async def delete_exception(self, doctor_id: int, exception_id: uuid.UUID) -> None:
        await self.store.delete_exception(doctor_id, exception_id)
