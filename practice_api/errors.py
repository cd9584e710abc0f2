"""Error taxonomy shared by the Scheduling Service and the operator-side client"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for recurring-scheduling failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """A required recurrence field is missing or malformed.

    Raised before any expansion or network call happens.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConflictBlockedError(SchedulingError):
    """Commit attempted while at least one instance is still in conflict"""

    def __init__(self, unresolved: list[int]):
        numbers = ", ".join(f"#{n}" for n in unresolved)
        super().__init__(f"Resolve all conflicts before creating ({numbers})")
        self.unresolved = unresolved


class InvalidTransitionError(SchedulingError):
    """Operator action not allowed from the instance's current state"""


class SchedulingConflictError(SchedulingError):
    """Server-side commit check found instances that still overlap existing bookings"""

    def __init__(self, message: str, conflicts: Optional[list[dict]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class ServiceError(SchedulingError):
    """The Scheduling Service answered with a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(SchedulingError):
    """The request never completed"""
