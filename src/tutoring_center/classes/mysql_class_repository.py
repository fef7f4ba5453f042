from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause, to_date, to_decimal
from .model import ClassSchedule, TutoringClass, parse_weekdays
from .repository import ClassRepository

_SELECT = """
    SELECT class_id, class_name, grade, year, is_available, teacher_id, fee_per_lesson,
           start_date, end_date, lesson_weekdays, ledger_id
    FROM classes
"""


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _rosters(self, cur, class_ids: Sequence[int]) -> dict[int, tuple[int, ...]]:
        if not class_ids:
            return {}
        cur.execute(
            f"""
            SELECT class_id, student_id
            FROM class_students
            WHERE class_id IN ({in_clause(class_ids)})
            ORDER BY class_id, position, student_id
            """,
            tuple(class_ids),
        )
        out: dict[int, list[int]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["class_id"]), []).append(int(r["student_id"]))
        return {k: tuple(v) for k, v in out.items()}

    @staticmethod
    def _to_model(r: dict, roster: tuple[int, ...]) -> TutoringClass:
        fee = r.get("fee_per_lesson")
        return TutoringClass(
            class_id=int(r["class_id"]),
            class_name=r["class_name"],
            grade=int(r["grade"]),
            year=int(r["year"]),
            is_available=bool(r["is_available"]),
            teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
            fee_per_lesson=to_decimal(fee) if fee is not None else None,
            schedule=ClassSchedule(
                start_date=to_date(r.get("start_date")),
                end_date=to_date(r.get("end_date")),
                days_of_lesson_in_week=parse_weekdays(r.get("lesson_weekdays")),
            ),
            student_ids=roster,
            ledger_id=int(r["ledger_id"]) if r.get("ledger_id") is not None else None,
        )

    def get_by_id(self, class_id: int) -> Optional[TutoringClass]:
        return self.get_many([int(class_id)]).get(int(class_id))

    def get_many(self, class_ids: Sequence[int]) -> dict[int, TutoringClass]:
        ids = sorted({int(c) for c in class_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE class_id IN ({in_clause(ids)})", tuple(ids))
            rows = fetchall(cur)
            rosters = self._rosters(cur, ids)
            return {int(r["class_id"]): self._to_model(r, rosters.get(int(r["class_id"]), ())) for r in rows}

    def set_ledger_id(self, *, class_id: int, ledger_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE classes SET ledger_id=%s WHERE class_id=%s", (int(ledger_id), int(class_id)))
            return cur.rowcount > 0
