from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, to_decimal
from .model import TuitionAdjustment
from .repository import TuitionRepository


class MySQLTuitionRepository(TuitionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def adjust(
        self,
        *,
        student_id: int,
        class_id: int,
        month: int,
        year: int,
        lessons_delta: int,
        credit_delta: Decimal,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tuition_adjustments(student_id, class_id, month, year, absent_lessons, absence_credit)
                VALUES(%s,%s,%s,%s,GREATEST(%s,0),GREATEST(%s,0))
                ON DUPLICATE KEY UPDATE
                    absent_lessons = GREATEST(absent_lessons + %s, 0),
                    absence_credit = GREATEST(absence_credit + %s, 0)
                """,
                (
                    int(student_id),
                    int(class_id),
                    int(month),
                    int(year),
                    int(lessons_delta),
                    credit_delta,
                    int(lessons_delta),
                    credit_delta,
                ),
            )

    def get(self, *, student_id: int, class_id: int, month: int, year: int) -> Optional[TuitionAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, class_id, month, year, absent_lessons, absence_credit
                FROM tuition_adjustments
                WHERE student_id=%s AND class_id=%s AND month=%s AND year=%s
                """,
                (int(student_id), int(class_id), int(month), int(year)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TuitionAdjustment(
                student_id=int(r["student_id"]),
                class_id=int(r["class_id"]),
                month=int(r["month"]),
                year=int(r["year"]),
                absent_lessons=int(r["absent_lessons"]),
                absence_credit=to_decimal(r["absence_credit"]),
            )
