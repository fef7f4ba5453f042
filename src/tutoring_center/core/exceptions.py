from __future__ import annotations

from .enums import ErrorCategory


class DomainError(Exception):
    """Base exception for business rule violations.

    `kind` is a stable machine-readable identifier, `category` the error family.
    """

    kind = "domain"
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind

    def to_dict(self) -> dict:
        return {"error": self.kind, "category": self.category.value, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation"
    category = ErrorCategory.VALIDATION


class NotFoundError(DomainError):
    """Raised when a class, lesson, teacher or wage record does not exist."""

    kind = "not_found"
    category = ErrorCategory.NOT_FOUND


class ConflictError(DomainError):
    """Raised when the operation clashes with existing data."""

    kind = "conflict"
    category = ErrorCategory.CONFLICT


class StateError(DomainError):
    """Raised when the target is in a state that forbids the operation."""

    kind = "state"
    category = ErrorCategory.STATE


class ScheduleIncompleteError(ValidationError):
    """Class schedule is missing its start date, end date or lesson weekdays."""

    kind = "schedule_incomplete"


class EmptyScheduleError(ValidationError):
    """Class schedule does not produce any lesson date."""

    kind = "empty_schedule"


class AlreadyExistsError(ConflictError):
    kind = "already_exists"


class AlreadyFullyPaidError(ConflictError):
    """Wage record has already been paid in full."""

    kind = "already_fully_paid"


class ConcurrentUpdateError(ConflictError):
    """Record kept changing underneath the update; retry later."""

    kind = "concurrent_update"


class InactiveClassError(StateError):
    """Class is no longer active."""

    kind = "inactive_class"


class ExceedsRemainingError(StateError):
    kind = "exceeds_remaining"


class NothingToPayError(StateError):
    """No unpaid wage records to settle."""

    kind = "nothing_to_pay"


class HasPaymentError(StateError):
    """Wage record has already received money and cannot be deleted."""

    kind = "has_payment"
