from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..users.model import UserIdentity


@dataclass(frozen=True)
class StudentMark:
    student_id: int
    is_absent: bool = False

    def as_dict(self) -> dict:
        return {"studentId": self.student_id, "isAbsent": self.is_absent}


@dataclass(frozen=True)
class LessonSummary:
    present_number: int
    absent_number: int
    total_students: int

    def as_dict(self) -> dict:
        return {
            "presentNumber": self.present_number,
            "absentNumber": self.absent_number,
            "totalStudents": self.total_students,
        }


@dataclass(frozen=True)
class LessonRecord:
    """Domain entity: one scheduled lesson of a class ledger with per-student flags."""

    lesson_id: int
    class_id: int
    lesson_date: date
    lesson_number: int
    students: tuple[StudentMark, ...] = ()
    version: int = 1

    def summary(self) -> LessonSummary:
        absent = sum(1 for s in self.students if s.is_absent)
        return LessonSummary(
            present_number=len(self.students) - absent,
            absent_number=absent,
            total_students=len(self.students),
        )

    def mark_for(self, student_id: int) -> StudentMark | None:
        for s in self.students:
            if s.student_id == student_id:
                return s
        return None


@dataclass(frozen=True)
class AttendanceUpdate:
    updated_count: int
    updated_entries: tuple[StudentMark, ...]

    def as_dict(self) -> dict:
        return {"updatedCount": self.updated_count, "updatedEntries": [e.as_dict() for e in self.updated_entries]}


@dataclass(frozen=True)
class LessonDetailRow:
    mark: StudentMark
    identity: UserIdentity

    def as_dict(self) -> dict:
        return {**self.mark.as_dict(), **self.identity.as_dict()}
