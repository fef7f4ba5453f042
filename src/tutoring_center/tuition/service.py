from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ..classes.model import TutoringClass
from ..common.validators import require_id, require_month_year
from ..core.constants import ZERO
from .model import TuitionAdjustment
from .repository import TuitionRepository

logger = logging.getLogger(__name__)


class TuitionService:
    """Keeps tuition absence credits in step with attendance flags."""

    def __init__(self, tuition: TuitionRepository):
        self._tuition = tuition

    def apply_mark_changes(
        self,
        *,
        cls: TutoringClass,
        lesson_date: date,
        newly_absent: Sequence[int],
        newly_present: Sequence[int],
    ) -> None:
        fee = cls.fee_per_lesson if cls.fee_per_lesson is not None else ZERO
        for student_id in newly_absent:
            self._adjust(cls.class_id, student_id, lesson_date, +1, fee)
        for student_id in newly_present:
            self._adjust(cls.class_id, student_id, lesson_date, -1, -fee)

    def reverse_lesson_absences(self, *, cls: TutoringClass, lesson_date: date, absent_ids: Sequence[int]) -> None:
        if not absent_ids:
            return
        self.apply_mark_changes(cls=cls, lesson_date=lesson_date, newly_absent=(), newly_present=absent_ids)
        logger.info(
            "Reversed absence credits",
            extra={"class_id": cls.class_id, "lesson_date": lesson_date.isoformat(), "students": len(absent_ids)},
        )

    def get_adjustment(self, *, student_id: int, class_id: int, month: int, year: int) -> TuitionAdjustment:
        student_id = require_id(student_id, "Student")
        class_id = require_id(class_id, "Class")
        month, year = require_month_year(month, year)
        found = self._tuition.get(student_id=student_id, class_id=class_id, month=month, year=year)
        return found or TuitionAdjustment(student_id=student_id, class_id=class_id, month=month, year=year)

    def _adjust(self, class_id: int, student_id: int, lesson_date: date, lessons: int, credit) -> None:
        self._tuition.adjust(
            student_id=int(student_id),
            class_id=int(class_id),
            month=lesson_date.month,
            year=lesson_date.year,
            lessons_delta=lessons,
            credit_delta=credit,
        )
