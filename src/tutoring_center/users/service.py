from __future__ import annotations

import logging
from typing import Sequence

from .model import Teacher, UserIdentity
from .repository import TeacherRepository, UserDirectory

logger = logging.getLogger(__name__)


class DirectoryService:
    """Best-effort identity enrichment for attendance and wage views.

    A failing or incomplete lookup degrades to placeholder identities instead of
    failing the whole response.
    """

    def __init__(self, users: UserDirectory, teachers: TeacherRepository):
        self._users = users
        self._teachers = teachers

    def students(self, student_ids: Sequence[int]) -> dict[int, UserIdentity]:
        try:
            found = self._users.student_identities(student_ids)
        except Exception:
            logger.warning("Student identity lookup failed", exc_info=True, extra={"count": len(student_ids)})
            found = {}
        return {int(sid): found.get(int(sid)) or UserIdentity.placeholder() for sid in student_ids}

    def teachers(self, teacher_ids: Sequence[int]) -> dict[int, UserIdentity]:
        try:
            found = self._teachers.get_many(teacher_ids)
        except Exception:
            logger.warning("Teacher identity lookup failed", exc_info=True, extra={"count": len(teacher_ids)})
            found = {}
        return {int(tid): self._teacher_identity(found.get(int(tid))) for tid in teacher_ids}

    @staticmethod
    def _teacher_identity(teacher: Teacher | None) -> UserIdentity:
        if teacher is None:
            return UserIdentity.placeholder()
        return UserIdentity(user_id=teacher.user_id, full_name=teacher.full_name, email=teacher.email)
