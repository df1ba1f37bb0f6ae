import uuid
from datetime import date
from fastapi import APIRouter, Depends
from medx360.api.deps import schedule_svc
from medx360.core.security import require_scopes
from medx360.modules.schedules.schemas import WeeklyRuleCreate, WeeklyRuleOut, ExceptionCreate, ExceptionOut
from medx360.modules.schedules.service import ScheduleService

router = APIRouter()

# Weekly rules
@router.post("/weekly-rules", response_model=WeeklyRuleOut, dependencies=[Depends(require_scopes("schedule:write"))])
async def save_weekly_rule(payload: WeeklyRuleCreate, service: ScheduleService = Depends(schedule_svc)):
    return await service.save_weekly_rule(payload)

@router.get("/{doctor_id}/weekly-rules", response_model=list[WeeklyRuleOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def list_weekly_rules(doctor_id: int, service: ScheduleService = Depends(schedule_svc)):
    return await service.list_weekly_rules(doctor_id)

@router.delete("/{doctor_id}/weekly-rules/{rule_id}", status_code=204, dependencies=[Depends(require_scopes("schedule:write"))])
async def delete_weekly_rule(doctor_id: int, rule_id: uuid.UUID, service: ScheduleService = Depends(schedule_svc)):
    await service.delete_weekly_rule(doctor_id, rule_id)

# Date exceptions
@router.post("/exceptions", response_model=ExceptionOut, dependencies=[Depends(require_scopes("schedule:write"))])
async def save_exception(payload: ExceptionCreate, service: ScheduleService = Depends(schedule_svc)):
    return await service.save_exception(payload)

@router.get("/{doctor_id}/exceptions", response_model=list[ExceptionOut], dependencies=[Depends(require_scopes("schedule:read"))])
async def list_exceptions(doctor_id: int, start: date, end: date, service: ScheduleService = Depends(schedule_svc)):
    return await service.list_exceptions(doctor_id, start, end)

@router.delete("/{doctor_id}/exceptions/{exception_id}", status_code=204, dependencies=[Depends(require_scopes("schedule:write"))])
async def delete_exception(doctor_id: int, exception_id: uuid.UUID, service: ScheduleService = Depends(schedule_svc)):
    await service.delete_exception(doctor_id, exception_id)
