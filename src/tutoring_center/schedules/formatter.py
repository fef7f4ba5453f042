from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..classes.model import ClassSchedule
from ..common.datetime_utils import month_key
from ..core.constants import WEEKDAY_LABELS
from ..core.exceptions import ScheduleIncompleteError, ValidationError
from .expander import expand


@dataclass(frozen=True)
class ScheduleView:
    """Display/intake view of a class calendar."""

    class_name: str
    start_date: date
    end_date: date
    lesson_day: tuple[str, ...]
    lesson_dates: tuple[date, ...]
    lessons_by_month: dict[str, list[str]] = field(default_factory=dict)

    @property
    def total_lessons(self) -> int:
        return len(self.lesson_dates)

    def as_dict(self) -> dict:
        return {
            "className": self.class_name,
            "totalLessons": self.total_lessons,
            "lessonDay": list(self.lesson_day),
            "lessonDates": [d.isoformat() for d in self.lesson_dates],
            "lessonsByMonth": {k: list(v) for k, v in self.lessons_by_month.items()},
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }


def weekday_label(day: int) -> str:
    if not 0 <= int(day) <= 6:
        raise ValidationError(f"Weekday index out of range: {day}")
    return WEEKDAY_LABELS[int(day)]


def format_schedule(class_name: str, schedule: ClassSchedule | None) -> ScheduleView:
    if schedule is None or not schedule.is_complete:
        raise ScheduleIncompleteError("Class schedule is incomplete")

    labels = tuple(weekday_label(d) for d in schedule.days_of_lesson_in_week)
    dates = expand(schedule.start_date, schedule.end_date, schedule.days_of_lesson_in_week)

    # Group by each lesson's own month, not the schedule's start month.
    by_month: dict[str, list[str]] = {}
    for d in dates:
        by_month.setdefault(month_key(d), []).append(d.isoformat())

    return ScheduleView(
        class_name=class_name,
        start_date=schedule.start_date,
        end_date=schedule.end_date,
        lesson_day=labels,
        lesson_dates=tuple(dates),
        lessons_by_month=by_month,
    )
