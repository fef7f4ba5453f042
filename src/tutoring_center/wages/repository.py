from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from .model import WageFilters, WageRecord


class WageRepository(Protocol):
    def get_by_id(self, wage_id: int) -> Optional[WageRecord]:
        raise NotImplementedError

    def find_by_key(self, *, teacher_id: int, class_id: int, month: int, year: int) -> Optional[WageRecord]:
        raise NotImplementedError

    def insert(self, record: WageRecord) -> Optional[int]:
        """Insert a new record. Returns wage_id, or None if the
        (teacher, class, month, year) key already exists."""

        raise NotImplementedError

    def update(self, record: WageRecord, *, expected_version: int) -> bool:
        """Compare-and-set on version. Returns False if the stored version moved on."""

        raise NotImplementedError

    def delete_if_unpaid(self, wage_id: int) -> bool:
        raise NotImplementedError

    def settle_unpaid(
        self,
        *,
        teacher_id: int,
        month: int,
        year: int,
        apply: Callable[[WageRecord], WageRecord],
    ) -> Sequence[WageRecord]:
        """Atomically rewrite every unpaid record with calculated_amount > 0 for the
        teacher/period through `apply`. Returns the rewritten records."""

        raise NotImplementedError

    def list(self, filters: WageFilters) -> Sequence[WageRecord]:
        """Records matching filters, newest period first."""

        raise NotImplementedError
