from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ClassSchedule:
    """Weekly recurrence rule embedded in a class.

    `days_of_lesson_in_week` uses 0=Sunday .. 6=Saturday.
    """

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days_of_lesson_in_week: tuple[int, ...] = ()

    @property
    def is_complete(self) -> bool:
        return bool(self.start_date and self.end_date and self.days_of_lesson_in_week)


@dataclass(frozen=True)
class TutoringClass:
    class_id: int
    class_name: str
    grade: int
    year: int
    is_available: bool = True
    teacher_id: Optional[int] = None
    fee_per_lesson: Optional[Decimal] = None
    schedule: ClassSchedule = field(default_factory=ClassSchedule)
    student_ids: tuple[int, ...] = ()
    ledger_id: Optional[int] = None


def parse_weekdays(value: Optional[str]) -> tuple[int, ...]:
    """Parse the stored "1,3,5" column into weekday indices."""
    if not value:
        return ()
    return tuple(int(p) for p in value.split(",") if p.strip())
