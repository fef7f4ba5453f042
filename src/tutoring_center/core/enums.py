from __future__ import annotations

from enum import Enum


class PaymentStatus(str, Enum):
    """Payment state of a wage record, derived from amount vs calculated amount."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    FULL = "full"


class ErrorCategory(str, Enum):
    """Stable error families reported to callers."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STATE = "state"
