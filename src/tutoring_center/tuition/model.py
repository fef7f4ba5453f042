from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..core.constants import ZERO


@dataclass(frozen=True)
class TuitionAdjustment:
    """Per student/class/month absence credit against tuition."""

    student_id: int
    class_id: int
    month: int
    year: int
    absent_lessons: int = 0
    absence_credit: Decimal = ZERO

    def as_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "classId": self.class_id,
            "month": self.month,
            "year": self.year,
            "absentLessons": self.absent_lessons,
            "absenceCredit": str(self.absence_credit),
        }
