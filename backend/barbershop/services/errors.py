"""
Typed failures raised by the scheduling engine.

Every operation either returns a result or raises one of these.
Only StoreUnavailable is worth retrying; the rest are final for the call
and are shown to the customer or the operator as-is.
"""


class SchedulingError(Exception):
    """Base class. `code` is the stable machine-readable name."""

    code = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(SchedulingError):
    """Malformed or missing input (empty service list, bad duration, ...)."""

    code = "validation_error"


class SlotConflict(SchedulingError):
    """A non-terminal booking already overlaps the requested window."""

    code = "slot_conflict"


class Unauthorized(SchedulingError):
    """Capability token does not match the record."""

    code = "unauthorized"


class NotFound(SchedulingError):
    code = "not_found"


class InvalidState(SchedulingError):
    """Transition not permitted from the record's current status."""

    code = "invalid_state"


class Expired(SchedulingError):
    """Promotion window already elapsed."""

    code = "expired"


class StoreUnavailable(SchedulingError):
    """The underlying transaction failed or timed out. Safe to retry."""

    code = "store_unavailable"
