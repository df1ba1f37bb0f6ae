import uuid
import logging
from datetime import date
from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from medx360.core.db import advisory_xact_lock
from medx360.core.errors import NotFoundError
from medx360.core.timeouts import bounded
from medx360.modules.schedules.models import WeeklyRuleRow, ExceptionRow
from medx360.modules.schedules.schemas import WeeklyRule, AvailabilityException
from medx360.modules.schedules.validation import validate_weekly_rule, validate_exception

logger = logging.getLogger(__name__)

class ScheduleRepository:
    """SQL schedule store; every call runs in its own short session."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self.sessions = sessions
        self.timeout = timeout

    # weekly rules
    async def get_weekly_rules(self, doctor_id: int) -> list[WeeklyRule]:
        return await bounded(self._get_weekly_rules(doctor_id), self.timeout, "get_weekly_rules")

    async def _get_weekly_rules(self, doctor_id: int) -> list[WeeklyRule]:
        async with self.sessions() as s:
            rows = await self._rules_for(s, doctor_id)
            return [WeeklyRule.model_validate(r) for r in rows]

    async def _rules_for(self, s: AsyncSession, doctor_id: int, day_of_week: int | None = None):
        cond = [WeeklyRuleRow.doctor_id == doctor_id]
        if day_of_week is not None:
            cond.append(WeeklyRuleRow.day_of_week == day_of_week)
        res = await s.execute(
            select(WeeklyRuleRow).where(and_(*cond)).order_by(WeeklyRuleRow.day_of_week, WeeklyRuleRow.start_time)
        )
        return res.scalars().all()

    async def upsert_weekly_rule(self, rule: WeeklyRule) -> WeeklyRule:
        validate_weekly_rule(rule)
        return await bounded(self._upsert_weekly_rule(rule), self.timeout, "upsert_weekly_rule")

    async def _upsert_weekly_rule(self, rule: WeeklyRule) -> WeeklyRule:
        async with self.sessions() as s, s.begin():
            await advisory_xact_lock(s, f"medx360:schedule:{rule.doctor_id}:{rule.day_of_week}")
            siblings = await self._rules_for(s, rule.doctor_id, rule.day_of_week)
            validate_weekly_rule(rule, [WeeklyRule.model_validate(r) for r in siblings])
            obj = await s.get(WeeklyRuleRow, rule.id) if rule.id else None
            if obj is not None and obj.doctor_id != rule.doctor_id:
                raise NotFoundError(f"weekly rule {rule.id} not found for doctor {rule.doctor_id}")
            data = rule.model_dump(exclude={"id"})
            if obj is None:
                obj = WeeklyRuleRow(id=rule.id or uuid.uuid4(), **data)
                s.add(obj)
            else:
                for k, v in data.items():
                    setattr(obj, k, v)
            await s.flush()
            logger.info("weekly rule %s saved for doctor %s", obj.id, obj.doctor_id)
            return WeeklyRule.model_validate(obj)

    async def delete_weekly_rule(self, doctor_id: int, rule_id: uuid.UUID) -> None:
        await bounded(self._delete(WeeklyRuleRow, doctor_id, rule_id), self.timeout, "delete_weekly_rule")

    # exceptions
    async def get_exceptions(self, doctor_id: int, start: date, end: date) -> list[AvailabilityException]:
        return await bounded(self._get_exceptions(doctor_id, start, end), self.timeout, "get_exceptions")

    async def _get_exceptions(self, doctor_id: int, start: date, end: date) -> list[AvailabilityException]:
        async with self.sessions() as s:
            res = await s.execute(
                select(ExceptionRow).where(
                    ExceptionRow.doctor_id == doctor_id,
                    ExceptionRow.date >= start,
                    ExceptionRow.date <= end,
                ).order_by(ExceptionRow.date, ExceptionRow.created_at)
            )
            return [AvailabilityException.model_validate(r) for r in res.scalars().all()]

    async def upsert_exception(self, exception: AvailabilityException) -> AvailabilityException:
        validate_exception(exception)
        return await bounded(self._upsert_exception(exception), self.timeout, "upsert_exception")

    async def _upsert_exception(self, exception: AvailabilityException) -> AvailabilityException:
        async with self.sessions() as s, s.begin():
            await advisory_xact_lock(s, f"medx360:exception:{exception.doctor_id}:{exception.date.isoformat()}")
            obj = await s.get(ExceptionRow, exception.id) if exception.id else None
            if obj is not None and obj.doctor_id != exception.doctor_id:
                raise NotFoundError(f"exception {exception.id} not found for doctor {exception.doctor_id}")
            if obj is None and exception.is_whole_day:
                # one whole-day override per doctor+date: the newest write replaces it
                res = await s.execute(select(ExceptionRow).where(
                    ExceptionRow.doctor_id == exception.doctor_id,
                    ExceptionRow.date == exception.date,
                    ExceptionRow.start_time.is_(None),
                    ExceptionRow.end_time.is_(None),
                ))
                obj = res.scalars().first()
            data = exception.model_dump(exclude={"id"})
            if obj is None:
                obj = ExceptionRow(id=exception.id or uuid.uuid4(), **data)
                s.add(obj)
            else:
                for k, v in data.items():
                    setattr(obj, k, v)
            if exception.is_whole_day:
                # edits by id may land on a date that already has a whole-day override
                await s.execute(delete(ExceptionRow).where(
                    ExceptionRow.doctor_id == exception.doctor_id,
                    ExceptionRow.date == exception.date,
                    ExceptionRow.start_time.is_(None),
                    ExceptionRow.end_time.is_(None),
                    ExceptionRow.id != obj.id,
                ))
            await s.flush()
            return AvailabilityException.model_validate(obj)

    async def delete_exception(self, doctor_id: int, exception_id: uuid.UUID) -> None:
        await bounded(self._delete(ExceptionRow, doctor_id, exception_id), self.timeout, "delete_exception")

    async def _delete(self, model, doctor_id: int, obj_id: uuid.UUID) -> None:
        async with self.sessions() as s, s.begin():
            res = await s.execute(delete(model).where(model.id == obj_id, model.doctor_id == doctor_id))
            if not res.rowcount:
                raise NotFoundError(f"{model.__tablename__} {obj_id} not found for doctor {doctor_id}")
