from typing import Iterable
from medx360.core.errors import ValidationError
from medx360.modules.schedules.schemas import WeeklyRule, AvailabilityException


def validate_weekly_rule(rule: WeeklyRule, siblings: Iterable[WeeklyRule] = ()) -> None:
    """
    Raise ValidationError for a malformed rule, or for an available rule that
    overlaps another available rule of the same doctor and weekday.
    `siblings` are the doctor's stored rules; the rule itself may be among them.
    """
    errors: dict[str, str] = {}
    if not 1 <= rule.day_of_week <= 7:
        errors["day_of_week"] = "must be between 1 (Monday) and 7 (Sunday)"
    if rule.interval[0] >= rule.interval[1]:
        errors["end_time"] = "end_time must be after start_time"
    if errors:
        raise ValidationError(errors)

    if not rule.is_available:
        return
    s, e = rule.interval
    for other in siblings:
        if other.id is not None and other.id == rule.id:
            continue
        if other.day_of_week != rule.day_of_week or not other.is_available:
            continue
        os_, oe = other.interval
        if s < oe and os_ < e:
            raise ValidationError(
                {"start_time": f"overlaps rule {other.start_time:%H:%M}-{other.end_time:%H:%M} on day {other.day_of_week}"}
            )


def validate_exception(exception: AvailabilityException) -> None:
    if (exception.start_time is None) != (exception.end_time is None):
        field = "end_time" if exception.end_time is None else "start_time"
        raise ValidationError({field: "start_time and end_time must be given together"})
    if not exception.is_whole_day and exception.interval[0] >= exception.interval[1]:
        raise ValidationError({"end_time": "end_time must be after start_time"})
