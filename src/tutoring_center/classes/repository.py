from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import TutoringClass


class ClassRepository(Protocol):
    """Class directory: existence, active flag, teacher, roster and recurrence rule."""

    def get_by_id(self, class_id: int) -> Optional[TutoringClass]:
        raise NotImplementedError

    def get_many(self, class_ids: Sequence[int]) -> dict[int, TutoringClass]:
        raise NotImplementedError

    def set_ledger_id(self, *, class_id: int, ledger_id: int) -> bool:
        raise NotImplementedError
