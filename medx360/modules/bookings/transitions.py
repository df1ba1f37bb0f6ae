from medx360.core.errors import InvalidTransitionError, ValidationError
from medx360.modules.bookings.schemas import VALID_NEXT


def check_transition(current: str, requested: str) -> bool:
    """
    True when the status must change, False for a repeat of the current
    status. Raises for unknown statuses and disallowed moves.
    """
    if requested not in VALID_NEXT:
        raise ValidationError({"status": f"unknown booking status {requested!r}"})
    if requested == current:
        return False
    if requested not in VALID_NEXT.get(current, set()):
        raise InvalidTransitionError(current, requested)
    return True
