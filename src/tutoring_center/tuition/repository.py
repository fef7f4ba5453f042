from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol

from .model import TuitionAdjustment


class TuitionRepository(Protocol):
    def adjust(
        self,
        *,
        student_id: int,
        class_id: int,
        month: int,
        year: int,
        lessons_delta: int,
        credit_delta: Decimal,
    ) -> None:
        """Increment (or decrement) an adjustment, creating it on first use."""

        raise NotImplementedError

    def get(self, *, student_id: int, class_id: int, month: int, year: int) -> Optional[TuitionAdjustment]:
        raise NotImplementedError
