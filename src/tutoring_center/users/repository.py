from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Teacher, UserIdentity


class TeacherRepository(Protocol):
    def get_by_id(self, teacher_id: int) -> Optional[Teacher]:
        raise NotImplementedError

    def get_many(self, teacher_ids: Sequence[int]) -> dict[int, Teacher]:
        raise NotImplementedError


class UserDirectory(Protocol):
    """Identity lookups keyed by student id."""

    def student_identities(self, student_ids: Sequence[int]) -> dict[int, UserIdentity]:
        raise NotImplementedError
