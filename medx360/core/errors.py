class SchedulingError(Exception):
    """Base for every error the scheduling core raises."""


class ValidationError(SchedulingError):
    """
    Malformed input. `errors` maps field name -> message so the request
    layer can report every problem at once.
    """

    def __init__(self, errors: dict[str, str] | str, field: str | None = None):
        if isinstance(errors, str):
            errors = {field or "__all__": errors}
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class ConflictError(SchedulingError):
    """Storage-level overlap/uniqueness violation on insert."""


class SlotUnavailableError(SchedulingError):
    """The requested interval cannot be booked."""


class NotFoundError(SchedulingError):
    pass


class InvalidTransitionError(SchedulingError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move booking from {current} to {requested}")


class StorageTimeoutError(SchedulingError):
    """A store call did not finish within its time budget."""
