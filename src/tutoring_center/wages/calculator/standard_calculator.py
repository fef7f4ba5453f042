from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ...core.constants import MONEY_QUANTUM
from ...core.exceptions import ValidationError
from .base import WageCalculator


class PerLessonWageCalculator(WageCalculator):
    """Standard rule: lessons taught x teacher's per-lesson rate."""

    def calculated_amount(self, lessons_taught: int, wage_per_lesson: Optional[Decimal]) -> Decimal:
        if wage_per_lesson is None:
            raise ValidationError("Teacher has no wage per lesson configured")
        if wage_per_lesson < 0:
            raise ValidationError("Teacher wage per lesson must not be negative")
        if int(lessons_taught) < 0:
            raise ValidationError("Lessons taught must not be negative")
        return (Decimal(int(lessons_taught)) * wage_per_lesson).quantize(MONEY_QUANTUM)
