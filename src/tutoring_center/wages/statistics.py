"""Aggregate folds over wage records.

All sums stay in `Decimal`; nothing here touches floats, so repeated runs over the
same records always produce the same totals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from typing import Iterable

from ..core.constants import ZERO
from ..core.enums import PaymentStatus
from .model import WageRecord
from .reconciliation import outstanding

_PERCENT_QUANTUM = Decimal("0.1")


@dataclass(frozen=True)
class WageTotals:
    records: int = 0
    unpaid: int = 0
    partial: int = 0
    full: int = 0
    lessons: int = 0
    calculated: Decimal = ZERO
    paid: Decimal = ZERO
    remaining: Decimal = ZERO

    def add(self, record: WageRecord) -> "WageTotals":
        status = record.payment_status.value
        return replace(
            self,
            records=self.records + 1,
            lessons=self.lessons + record.lesson_taught,
            calculated=self.calculated + record.calculated_amount,
            paid=self.paid + record.amount,
            remaining=self.remaining + record.remaining_amount,
            **{status: getattr(self, status) + 1},
        )

    def as_dict(self) -> dict:
        return {
            "totalRecords": self.records,
            "unpaidCount": self.unpaid,
            "partialCount": self.partial,
            "fullCount": self.full,
            "totalLessons": self.lessons,
            "totalCalculatedAmount": str(self.calculated),
            "totalPaidAmount": str(self.paid),
            "totalRemainingAmount": str(self.remaining),
        }


def summarize(records: Iterable[WageRecord]) -> WageTotals:
    return reduce(WageTotals.add, records, WageTotals())


def _group(records: Iterable[WageRecord], key) -> dict:
    out: dict = {}
    for r in records:
        k = key(r)
        out[k] = out.get(k, WageTotals()).add(r)
    return out


def by_teacher(records: Iterable[WageRecord]) -> dict[int, WageTotals]:
    return _group(records, lambda r: r.teacher_id)


def by_month(records: Iterable[WageRecord]) -> dict[str, WageTotals]:
    """Keyed "YYYY-M", newest period first."""
    grouped = _group(records, lambda r: (r.year, r.month))
    return {f"{y}-{m}": grouped[(y, m)] for y, m in sorted(grouped, reverse=True)}


def outstanding_stats(records: Iterable[WageRecord]) -> dict:
    records = list(records)
    owed = [r for r in records if outstanding(r) > 0]
    total = sum((outstanding(r) for r in owed), ZERO)

    billable = [r for r in records if r.calculated_amount > 0]
    if billable:
        pct_sum = sum((r.amount * 100 / r.calculated_amount for r in billable), Decimal(0))
        average = (pct_sum / len(billable)).quantize(_PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    else:
        average = Decimal("0.0")

    return {
        "totalOutstanding": str(total),
        "recordsWithOutstanding": len(owed),
        "unpaidCount": sum(1 for r in records if r.payment_status == PaymentStatus.UNPAID),
        "partialCount": sum(1 for r in records if r.payment_status == PaymentStatus.PARTIAL),
        "averagePaymentPercentage": str(average),
    }
