from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..classes.model import TutoringClass
from ..classes.repository import ClassRepository
from ..common.validators import require_id
from ..core.constants import DEFAULT_WRITE_RETRIES
from ..core.exceptions import (
    AlreadyExistsError,
    ConcurrentUpdateError,
    EmptyScheduleError,
    InactiveClassError,
    NotFoundError,
    ValidationError,
)
from ..schedules.formatter import format_schedule
from ..tuition.service import TuitionService
from ..users.service import DirectoryService
from .model import AttendanceUpdate, LessonDetailRow, LessonRecord, StudentMark
from .repository import AttendanceLedgerRepository

logger = logging.getLogger(__name__)


def merge_marks(
    current: Sequence[StudentMark], flags: Sequence[StudentMark]
) -> tuple[tuple[StudentMark, ...], list[StudentMark]]:
    """Overwrite flags of students already on the lesson roster.

    Unknown student ids are skipped; the roster is never resized. Returns the new
    roster and the entries that matched (last flag wins for duplicates).
    """
    wanted: dict[int, bool] = {}
    for f in flags:
        wanted[int(f.student_id)] = bool(f.is_absent)

    merged: list[StudentMark] = []
    updated: list[StudentMark] = []
    for mark in current:
        if mark.student_id in wanted:
            new = StudentMark(student_id=mark.student_id, is_absent=wanted[mark.student_id])
            merged.append(new)
            updated.append(new)
        else:
            merged.append(mark)
    return tuple(merged), updated


class AttendanceService:
    """Use cases over a class's attendance ledger."""

    def __init__(
        self,
        ledgers: AttendanceLedgerRepository,
        classes: ClassRepository,
        directory: DirectoryService,
        tuition: TuitionService,
        *,
        write_retries: int = DEFAULT_WRITE_RETRIES,
    ):
        self._ledgers = ledgers
        self._classes = classes
        self._directory = directory
        self._tuition = tuition
        self._write_retries = max(int(write_retries), 1)

    def _get_class(self, class_id) -> TutoringClass:
        cls = self._classes.get_by_id(require_id(class_id, "Class"))
        if not cls:
            raise NotFoundError("Class not found")
        return cls

    def _get_lesson(self, class_id: int, lesson_number) -> LessonRecord:
        lesson = self._ledgers.get_lesson(class_id=class_id, lesson_number=require_id(lesson_number, "Lesson number"))
        if not lesson:
            raise NotFoundError("Attendance record not found for this lesson")
        return lesson

    def create_ledger(self, class_id: int) -> list[LessonRecord]:
        cls = self._get_class(class_id)
        if not cls.is_available:
            raise InactiveClassError("Class is no longer active")
        if cls.ledger_id is not None or self._ledgers.get_ledger_id(cls.class_id) is not None:
            raise AlreadyExistsError("Attendance ledger already exists for this class")

        view = format_schedule(cls.class_name, cls.schedule)
        if not view.lesson_dates:
            raise EmptyScheduleError("Class schedule has no lesson dates")

        ledger_id = self._ledgers.create_ledger(
            class_id=cls.class_id,
            lesson_dates=view.lesson_dates,
            student_ids=cls.student_ids,
        )
        self._classes.set_ledger_id(class_id=cls.class_id, ledger_id=ledger_id)

        logger.info(
            "Attendance ledger created",
            extra={"class_id": cls.class_id, "ledger_id": ledger_id, "lessons": view.total_lessons},
        )
        return list(self._ledgers.list_lessons(cls.class_id))

    def list_summaries(self, class_id: int) -> list[dict]:
        cls = self._get_class(class_id)
        return [
            {
                "date": lesson.lesson_date.isoformat(),
                "lessonNumber": lesson.lesson_number,
                "summary": lesson.summary().as_dict(),
            }
            for lesson in self._ledgers.list_lessons(cls.class_id)
        ]

    def get_lesson_detail(self, class_id: int, lesson_number: int) -> dict:
        cls = self._get_class(class_id)
        lesson = self._get_lesson(cls.class_id, lesson_number)
        identities = self._directory.students([s.student_id for s in lesson.students])
        rows = [LessonDetailRow(mark=s, identity=identities[s.student_id]) for s in lesson.students]
        return {
            "classId": cls.class_id,
            "className": cls.class_name,
            "date": lesson.lesson_date.isoformat(),
            "lessonNumber": lesson.lesson_number,
            "summary": lesson.summary().as_dict(),
            "students": [r.as_dict() for r in rows],
        }

    def record_attendance(self, class_id: int, lesson_number: int, flags: Sequence[StudentMark]) -> AttendanceUpdate:
        cls = self._get_class(class_id)

        for attempt in range(1, self._write_retries + 1):
            lesson = self._get_lesson(cls.class_id, lesson_number)
            merged, updated = merge_marks(lesson.students, flags)
            if not updated:
                return AttendanceUpdate(updated_count=0, updated_entries=())

            if self._ledgers.save_marks(lesson_id=lesson.lesson_id, marks=merged, expected_version=lesson.version):
                break
            logger.info(
                "Lesson changed concurrently, retrying",
                extra={"class_id": cls.class_id, "lesson_number": lesson.lesson_number, "attempt": attempt},
            )
        else:
            raise ConcurrentUpdateError("Attendance record is being updated by someone else")

        before = {s.student_id: s.is_absent for s in lesson.students}
        newly_absent = [m.student_id for m in updated if m.is_absent and not before[m.student_id]]
        newly_present = [m.student_id for m in updated if not m.is_absent and before[m.student_id]]
        try:
            self._tuition.apply_mark_changes(
                cls=cls, lesson_date=lesson.lesson_date, newly_absent=newly_absent, newly_present=newly_present
            )
        except Exception:
            logger.exception(
                "Tuition adjustment failed after attendance was saved",
                extra={
                    "class_id": cls.class_id,
                    "lesson_id": lesson.lesson_id,
                    "lesson_number": lesson.lesson_number,
                    "newly_absent": newly_absent,
                    "newly_present": newly_present,
                },
            )
            raise

        logger.info(
            "Attendance recorded",
            extra={"class_id": cls.class_id, "lesson_number": lesson.lesson_number, "updated": len(updated)},
        )
        return AttendanceUpdate(updated_count=len(updated), updated_entries=tuple(updated))

    def delete_lesson(self, class_id: int, lesson_number: int) -> dict:
        """Administrative removal.

        Absence credits are reversed only after the version-guarded delete went through,
        using the flags of the row that was actually removed.
        """
        cls = self._get_class(class_id)

        for attempt in range(1, self._write_retries + 1):
            lesson = self._get_lesson(cls.class_id, lesson_number)
            if self._ledgers.delete_lesson(lesson_id=lesson.lesson_id, expected_version=lesson.version):
                break
            logger.info(
                "Lesson changed concurrently, retrying",
                extra={"class_id": cls.class_id, "lesson_number": lesson.lesson_number, "attempt": attempt},
            )
        else:
            raise ConcurrentUpdateError("Attendance record is being updated by someone else")

        absent_ids = [s.student_id for s in lesson.students if s.is_absent]
        try:
            self._tuition.reverse_lesson_absences(cls=cls, lesson_date=lesson.lesson_date, absent_ids=absent_ids)
        except Exception:
            logger.exception(
                "Tuition reversal failed after lesson was deleted",
                extra={"class_id": cls.class_id, "lesson_id": lesson.lesson_id, "absent_ids": absent_ids},
            )
            raise

        logger.info(
            "Attendance record deleted",
            extra={"class_id": cls.class_id, "lesson_number": lesson.lesson_number, "reversed": len(absent_ids)},
        )
        return {"lessonNumber": lesson.lesson_number, "reversedAbsences": len(absent_ids)}

    def student_summary(
        self,
        class_id: int,
        student_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict:
        cls = self._get_class(class_id)
        student_id = require_id(student_id, "Student")
        if start and end and end < start:
            raise ValidationError("End date must not be before start date")

        records = []
        for lesson in self._ledgers.list_lessons(cls.class_id):
            if start and lesson.lesson_date < start:
                continue
            if end and lesson.lesson_date > end:
                continue
            mark = lesson.mark_for(student_id)
            if mark is None:
                continue
            records.append(
                {"date": lesson.lesson_date.isoformat(), "lessonNumber": lesson.lesson_number, "isAbsent": mark.is_absent}
            )

        absent = sum(1 for r in records if r["isAbsent"])
        return {
            "studentId": student_id,
            "totalLessons": len(records),
            "presentCount": len(records) - absent,
            "absentCount": absent,
            "records": records,
        }

    def class_stats(self, class_id: int) -> dict:
        cls = self._get_class(class_id)
        lessons = self._ledgers.list_lessons(cls.class_id)

        by_student: dict[int, dict] = {}
        for lesson in lessons:
            for mark in lesson.students:
                s = by_student.setdefault(mark.student_id, {"present": 0, "absent": 0, "total": 0})
                s["total"] += 1
                s["absent" if mark.is_absent else "present"] += 1

        total_marks = sum(s["total"] for s in by_student.values())
        total_present = sum(s["present"] for s in by_student.values())
        for s in by_student.values():
            s["rate"] = round(s["present"] * 100 / s["total"], 1) if s["total"] else 0.0

        return {
            "totalSessions": len(lessons),
            "averageAttendance": round(total_present * 100 / total_marks, 1) if total_marks else 0.0,
            "attendanceByStudent": {str(k): v for k, v in by_student.items()},
        }
