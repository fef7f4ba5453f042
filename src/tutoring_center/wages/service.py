from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..attendance.repository import AttendanceLedgerRepository
from ..classes.repository import ClassRepository
from ..common.datetime_utils import month_bounds, now_local
from ..common.validators import require_id, require_month_year, require_non_negative_money, require_positive_money
from ..core.constants import DEFAULT_WRITE_RETRIES, UNKNOWN_NAME, ZERO
from ..core.enums import PaymentStatus
from ..core.exceptions import (
    AlreadyFullyPaidError,
    ConcurrentUpdateError,
    ExceedsRemainingError,
    HasPaymentError,
    NotFoundError,
    NothingToPayError,
    ValidationError,
)
from ..users.repository import TeacherRepository
from ..users.service import DirectoryService
from . import statistics
from .calculator.base import WageCalculator
from .calculator.standard_calculator import PerLessonWageCalculator
from .model import CalculationReport, WageFilters, WageRecord
from .reconciliation import normalize
from .repository import WageRepository

logger = logging.getLogger(__name__)


class WageService:
    """Monthly wage calculation, payments and wage reporting."""

    def __init__(
        self,
        wages: WageRepository,
        ledgers: AttendanceLedgerRepository,
        classes: ClassRepository,
        teachers: TeacherRepository,
        directory: DirectoryService,
        *,
        calculator: Optional[WageCalculator] = None,
        write_retries: int = DEFAULT_WRITE_RETRIES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._wages = wages
        self._ledgers = ledgers
        self._classes = classes
        self._teachers = teachers
        self._directory = directory
        self._calculator = calculator or PerLessonWageCalculator()
        self._write_retries = max(int(write_retries), 1)
        self._clock = clock

    # ------------------------------------------------------------------
    # Monthly calculation
    # ------------------------------------------------------------------

    def run_monthly_calculation(self, month, year, actor_id) -> CalculationReport:
        """Recompute lessonTaught/calculatedAmount for every (teacher, class) of the period.

        A failing group is reported in `errors` and never stops the others.
        """
        month, year = require_month_year(month, year)
        actor = require_id(actor_id, "Actor")
        start, end = month_bounds(month, year)
        report = CalculationReport(month=month, year=year, calculated_by=actor)

        lessons = self._ledgers.lessons_between(start=start, end=end)
        classes = self._classes.get_many(sorted({lesson.class_id for lesson in lessons}))

        groups: Counter[tuple[int, int]] = Counter()
        orphaned: set[int] = set()
        for lesson in lessons:
            cls = classes.get(lesson.class_id)
            if cls is None or cls.teacher_id is None:
                orphaned.add(lesson.class_id)
                continue
            groups[(cls.teacher_id, cls.class_id)] += 1

        for class_id in sorted(orphaned):
            reason = "Class not found" if class_id not in classes else "Class has no assigned teacher"
            report.errors.append({"teacherId": None, "classId": class_id, "error": reason})
            logger.warning("Wage group skipped", extra={"class_id": class_id, "reason": reason})

        teachers = self._teachers.get_many(sorted({teacher_id for teacher_id, _ in groups}))

        for (teacher_id, class_id), taught in sorted(groups.items()):
            try:
                teacher = teachers.get(teacher_id)
                if teacher is None:
                    raise NotFoundError("Teacher not found")
                calculated = self._calculator.calculated_amount(taught, teacher.wage_per_lesson)
                action, record = self._upsert_group(
                    teacher_id=teacher_id,
                    class_id=class_id,
                    month=month,
                    year=year,
                    lessons=taught,
                    calculated=calculated,
                )
            except Exception as e:
                report.errors.append({"teacherId": teacher_id, "classId": class_id, "error": str(e)})
                logger.warning(
                    "Wage group failed",
                    exc_info=not isinstance(e, (ValidationError, NotFoundError)),
                    extra={"teacher_id": teacher_id, "class_id": class_id, "month": month, "year": year},
                )
                continue

            report.results.append(
                {
                    "teacherId": teacher_id,
                    "classId": class_id,
                    "wageId": record.wage_id,
                    "lessonTaught": record.lesson_taught,
                    "calculatedAmount": str(record.calculated_amount),
                    "action": action,
                }
            )

        logger.info(
            "Monthly wage calculation finished",
            extra={
                "month": month,
                "year": year,
                "actor_id": actor,
                "created": report.created,
                "updated": report.updated,
                "failed": report.failed,
            },
        )
        return report

    def _upsert_group(
        self, *, teacher_id: int, class_id: int, month: int, year: int, lessons: int, calculated
    ) -> tuple[str, WageRecord]:
        for attempt in range(1, self._write_retries + 1):
            current = self._wages.find_by_key(teacher_id=teacher_id, class_id=class_id, month=month, year=year)
            if current is None:
                new = normalize(
                    WageRecord(
                        wage_id=0,
                        teacher_id=teacher_id,
                        class_id=class_id,
                        month=month,
                        year=year,
                        lesson_taught=lessons,
                        calculated_amount=calculated,
                        amount=ZERO,
                    )
                )
                wage_id = self._wages.insert(new)
                if wage_id is not None:
                    return "created", replace(new, wage_id=wage_id)
                # Lost the insert race; the next pass takes the update path.
                continue

            if current.lesson_taught == lessons and current.calculated_amount == calculated:
                return "updated", current

            # amount, paymentDate and paidBy are carried over; only derived fields move.
            new = normalize(replace(current, lesson_taught=lessons, calculated_amount=calculated))
            if self._wages.update(new, expected_version=current.version):
                return "updated", replace(new, version=current.version + 1)
            logger.info(
                "Wage record changed concurrently, retrying",
                extra={"wage_id": current.wage_id, "attempt": attempt},
            )

        raise ConcurrentUpdateError("Wage record is being updated by someone else")

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _get_record(self, wage_id: int) -> WageRecord:
        record = self._wages.get_by_id(wage_id)
        if not record:
            raise NotFoundError("Wage record not found")
        return record

    def apply_payment(self, wage_id, paid_amount, payer_id) -> WageRecord:
        wage_id = require_id(wage_id, "Wage record")
        paid = require_positive_money(paid_amount, "Paid amount")
        payer = require_id(payer_id, "Payer")

        for attempt in range(1, self._write_retries + 1):
            current = self._get_record(wage_id)
            if current.payment_status == PaymentStatus.FULL:
                raise AlreadyFullyPaidError("Wage record has already been paid in full")
            if paid > current.remaining_amount:
                raise ExceedsRemainingError(
                    f"Paid amount {paid} exceeds remaining amount {current.remaining_amount}"
                )

            new = normalize(
                replace(current, amount=current.amount + paid, payment_date=self._clock(), paid_by=payer)
            )
            if self._wages.update(new, expected_version=current.version):
                logger.info(
                    "Wage payment applied",
                    extra={
                        "wage_id": wage_id,
                        "paid_amount": str(paid),
                        "payment_status": new.payment_status.value,
                        "payer_id": payer,
                    },
                )
                return replace(new, version=current.version + 1)
            logger.info("Wage record changed concurrently, retrying", extra={"wage_id": wage_id, "attempt": attempt})

        raise ConcurrentUpdateError("Wage record is being updated by someone else")

    def bulk_settle(self, teacher_id, month, year, payer_id) -> list[WageRecord]:
        """Pay every unpaid record of the teacher/period in full, in one transaction."""
        teacher_id = require_id(teacher_id, "Teacher")
        month, year = require_month_year(month, year)
        payer = require_id(payer_id, "Payer")
        paid_at = self._clock()

        def settle(record: WageRecord) -> WageRecord:
            return normalize(replace(record, amount=record.calculated_amount, payment_date=paid_at, paid_by=payer))

        settled = list(self._wages.settle_unpaid(teacher_id=teacher_id, month=month, year=year, apply=settle))
        if not settled:
            raise NothingToPayError("No unpaid wage records for this teacher and period")

        logger.info(
            "Wage records settled",
            extra={"teacher_id": teacher_id, "month": month, "year": year, "count": len(settled), "payer_id": payer},
        )
        return settled

    # ------------------------------------------------------------------
    # Administrative overrides
    # ------------------------------------------------------------------

    def update_wage_record(
        self,
        wage_id,
        *,
        lesson_taught=None,
        amount=None,
        payment_date: Optional[datetime] = None,
        paid_by=None,
    ) -> WageRecord:
        wage_id = require_id(wage_id, "Wage record")
        changes: dict = {}
        if lesson_taught is not None:
            try:
                lessons = int(lesson_taught)
            except (TypeError, ValueError):
                raise ValidationError("lessonTaught must be an integer")
            if lessons < 0:
                raise ValidationError("lessonTaught must not be negative")
            changes["lesson_taught"] = lessons
        if amount is not None:
            changes["amount"] = require_non_negative_money(amount, "Amount")
        if payment_date is not None:
            changes["payment_date"] = payment_date
        if paid_by is not None:
            changes["paid_by"] = require_id(paid_by, "Paid by")
        if not changes:
            raise ValidationError("Nothing to update")

        for attempt in range(1, self._write_retries + 1):
            current = self._get_record(wage_id)
            fields = dict(changes)
            if "lesson_taught" in fields:
                teacher = self._teachers.get_by_id(current.teacher_id)
                if not teacher:
                    raise NotFoundError("Teacher not found")
                fields["calculated_amount"] = self._calculator.calculated_amount(
                    fields["lesson_taught"], teacher.wage_per_lesson
                )

            new = normalize(replace(current, **fields))
            if self._wages.update(new, expected_version=current.version):
                logger.info("Wage record updated", extra={"wage_id": wage_id, "fields": sorted(changes)})
                return replace(new, version=current.version + 1)
            logger.info("Wage record changed concurrently, retrying", extra={"wage_id": wage_id, "attempt": attempt})

        raise ConcurrentUpdateError("Wage record is being updated by someone else")

    def delete_wage_record(self, wage_id) -> None:
        wage_id = require_id(wage_id, "Wage record")
        current = self._get_record(wage_id)
        if current.payment_status != PaymentStatus.UNPAID:
            raise HasPaymentError("Wage record has already received money and cannot be deleted")

        if not self._wages.delete_if_unpaid(wage_id):
            # A payment landed between the read and the delete.
            self._get_record(wage_id)
            raise HasPaymentError("Wage record has already received money and cannot be deleted")
        logger.info("Wage record deleted", extra={"wage_id": wage_id})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _class_names(self, class_ids: Sequence[int]) -> dict[int, str]:
        try:
            found = self._classes.get_many(class_ids)
        except Exception:
            logger.warning("Class lookup failed", exc_info=True, extra={"count": len(class_ids)})
            found = {}
        return {cid: found[cid].class_name if cid in found else UNKNOWN_NAME for cid in class_ids}

    def _enrich(self, records: Sequence[WageRecord]) -> list[dict]:
        teachers = self._directory.teachers(sorted({r.teacher_id for r in records}))
        class_names = self._class_names(sorted({r.class_id for r in records}))
        out = []
        for r in records:
            item = r.as_dict()
            item["teacher"] = teachers[r.teacher_id].as_dict()
            item["className"] = class_names[r.class_id]
            out.append(item)
        return out

    def get_wage(self, wage_id) -> dict:
        record = self._get_record(require_id(wage_id, "Wage record"))
        return self._enrich([record])[0]

    def list_wages(self, filters: WageFilters) -> list[dict]:
        return self._enrich(self._wages.list(filters))

    def statistics(self, filters: WageFilters) -> dict:
        records = list(self._wages.list(filters))
        per_teacher = statistics.by_teacher(records)
        teachers = self._directory.teachers(sorted(per_teacher))
        return {
            "filters": filters.as_dict(),
            "totals": statistics.summarize(records).as_dict(),
            "byTeacher": [
                {"teacherId": tid, "fullName": teachers[tid].full_name, **totals.as_dict()}
                for tid, totals in sorted(per_teacher.items())
            ],
            "byMonth": {period: totals.as_dict() for period, totals in statistics.by_month(records).items()},
        }

    def outstanding(self, filters: WageFilters) -> dict:
        records = list(self._wages.list(filters))
        return {"filters": filters.as_dict(), **statistics.outstanding_stats(records)}

    def teacher_summary(self, teacher_id) -> dict:
        teacher_id = require_id(teacher_id, "Teacher")
        teacher = self._teachers.get_by_id(teacher_id)
        if not teacher:
            raise NotFoundError("Teacher not found")

        totals = statistics.summarize(self._wages.list(WageFilters(teacher_id=teacher_id)))
        return {
            "teacherId": teacher_id,
            "fullName": teacher.full_name,
            "wagePerLesson": str(teacher.wage_per_lesson) if teacher.wage_per_lesson is not None else None,
            **totals.as_dict(),
        }

    def unpaid_wages(self, filters: WageFilters) -> list[dict]:
        """Unpaid records grouped by teacher."""
        records = self._wages.list(replace(filters, payment_status=PaymentStatus.UNPAID))
        enriched = self._enrich(records)

        groups: dict[int, dict] = {}
        for record, item in zip(records, enriched):
            g = groups.get(record.teacher_id)
            if not g:
                g = {
                    "teacherId": record.teacher_id,
                    "teacher": item["teacher"],
                    "totalCalculatedAmount": ZERO,
                    "totalLessons": 0,
                    "records": [],
                }
                groups[record.teacher_id] = g
            g["totalCalculatedAmount"] += record.calculated_amount
            g["totalLessons"] += record.lesson_taught
            g["records"].append(item)

        out = []
        for g in sorted(groups.values(), key=lambda x: x["teacherId"]):
            g["totalCalculatedAmount"] = str(g["totalCalculatedAmount"])
            out.append(g)
        return out
