from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..common.validators import require_id, require_month_year
from ..core.constants import ZERO
from ..core.enums import PaymentStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class WageRecord:
    """Per teacher/class/month compensation entry.

    `remaining_amount` and `payment_status` are derived; run every mutation
    through `reconciliation.normalize` before persisting.
    """

    wage_id: int
    teacher_id: int
    class_id: int
    month: int
    year: int
    lesson_taught: int = 0
    calculated_amount: Decimal = ZERO
    amount: Decimal = ZERO
    remaining_amount: Decimal = ZERO
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_date: Optional[datetime] = None
    paid_by: Optional[int] = None
    version: int = 1

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (self.teacher_id, self.class_id, self.month, self.year)

    @property
    def payment_percentage(self) -> int:
        if self.calculated_amount == 0:
            return 0
        pct = self.amount * 100 / self.calculated_amount
        return int(pct.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def as_dict(self) -> dict:
        return {
            "wageId": self.wage_id,
            "teacherId": self.teacher_id,
            "classId": self.class_id,
            "month": self.month,
            "year": self.year,
            "lessonTaught": self.lesson_taught,
            "calculatedAmount": str(self.calculated_amount),
            "amount": str(self.amount),
            "remainingAmount": str(self.remaining_amount),
            "paymentStatus": self.payment_status.value,
            "paymentPercentage": self.payment_percentage,
            "paymentDate": self.payment_date.isoformat() if self.payment_date else None,
            "paidBy": self.paid_by,
        }


@dataclass(frozen=True)
class WageFilters:
    teacher_id: Optional[int] = None
    class_id: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    payment_status: Optional[PaymentStatus] = None

    @classmethod
    def build(cls, *, teacher_id=None, class_id=None, month=None, year=None, payment_status=None) -> "WageFilters":
        if month is not None and year is not None:
            month, year = require_month_year(month, year)
        elif month is not None:
            month, _ = require_month_year(month, 2000)
        elif year is not None:
            _, year = require_month_year(1, year)

        status = None
        if payment_status:
            try:
                status = PaymentStatus(str(payment_status))
            except ValueError:
                raise ValidationError("paymentStatus must be one of unpaid, partial, full")

        return cls(
            teacher_id=require_id(teacher_id, "Teacher") if teacher_id is not None else None,
            class_id=require_id(class_id, "Class") if class_id is not None else None,
            month=month,
            year=year,
            payment_status=status,
        )

    def matches(self, record: WageRecord) -> bool:
        if self.teacher_id is not None and record.teacher_id != self.teacher_id:
            return False
        if self.class_id is not None and record.class_id != self.class_id:
            return False
        if self.month is not None and record.month != self.month:
            return False
        if self.year is not None and record.year != self.year:
            return False
        if self.payment_status is not None and record.payment_status != self.payment_status:
            return False
        return True

    def as_dict(self) -> dict:
        return {
            "teacherId": self.teacher_id,
            "classId": self.class_id,
            "month": self.month,
            "year": self.year,
            "paymentStatus": self.payment_status.value if self.payment_status else None,
        }


@dataclass
class CalculationReport:
    month: int
    year: int
    calculated_by: int
    results: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for r in self.results if r["action"] == "created")

    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r["action"] == "updated")

    @property
    def failed(self) -> int:
        return len(self.errors)

    def as_dict(self) -> dict:
        return {
            "month": self.month,
            "year": self.year,
            "calculatedBy": self.calculated_by,
            "totalProcessed": len(self.results),
            "summary": {"created": self.created, "updated": self.updated, "failed": self.failed},
            "results": list(self.results),
            "errors": list(self.errors),
        }
