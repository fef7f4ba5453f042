from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import LessonRecord, StudentMark


class AttendanceLedgerRepository(Protocol):
    def get_ledger_id(self, class_id: int) -> Optional[int]:
        raise NotImplementedError

    def create_ledger(self, *, class_id: int, lesson_dates: Sequence[date], student_ids: Sequence[int]) -> int:
        """Write the ledger and one lesson per date (numbered 1..N in the given order)
        with every student marked present, atomically.

        Raises AlreadyExistsError if the class already has a ledger. Returns ledger_id.
        """

        raise NotImplementedError

    def list_lessons(self, class_id: int) -> Sequence[LessonRecord]:
        """Lessons of a class ordered by lesson_number."""

        raise NotImplementedError

    def get_lesson(self, *, class_id: int, lesson_number: int) -> Optional[LessonRecord]:
        raise NotImplementedError

    def save_marks(self, *, lesson_id: int, marks: Sequence[StudentMark], expected_version: int) -> bool:
        """Overwrite the flags of a lesson if its version still matches.

        Returns False when another writer got there first.
        """

        raise NotImplementedError

    def delete_lesson(self, *, lesson_id: int, expected_version: int) -> bool:
        """Delete a lesson (and its marks) if its version still matches."""

        raise NotImplementedError

    def lessons_between(self, *, start: date, end: date) -> Sequence[LessonRecord]:
        """All lessons (any class) dated in the half-open range [start, end)."""

        raise NotImplementedError
