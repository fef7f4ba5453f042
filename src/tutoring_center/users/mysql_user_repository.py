from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import UNKNOWN_NAME
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause, to_decimal
from .model import Teacher, UserIdentity
from .repository import TeacherRepository, UserDirectory


class MySQLTeacherRepository(TeacherRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, teacher_id: int) -> Optional[Teacher]:
        return self.get_many([int(teacher_id)]).get(int(teacher_id))

    def get_many(self, teacher_ids: Sequence[int]) -> dict[int, Teacher]:
        ids = sorted({int(t) for t in teacher_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT t.teacher_id, t.user_id, t.wage_per_lesson, u.full_name, u.email
                FROM teachers t
                LEFT JOIN users u ON u.user_id = t.user_id
                WHERE t.teacher_id IN ({in_clause(ids)})
                """,
                tuple(ids),
            )
            out: dict[int, Teacher] = {}
            for r in fetchall(cur):
                rate = r.get("wage_per_lesson")
                out[int(r["teacher_id"])] = Teacher(
                    teacher_id=int(r["teacher_id"]),
                    user_id=int(r["user_id"]),
                    wage_per_lesson=to_decimal(rate) if rate is not None else None,
                    full_name=r.get("full_name") or UNKNOWN_NAME,
                    email=r.get("email") or "",
                )
            return out


class MySQLUserDirectory(UserDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def student_identities(self, student_ids: Sequence[int]) -> dict[int, UserIdentity]:
        ids = sorted({int(s) for s in student_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT s.student_id, u.user_id, u.full_name, u.email, u.phone
                FROM students s
                JOIN users u ON u.user_id = s.user_id
                WHERE s.student_id IN ({in_clause(ids)})
                """,
                tuple(ids),
            )
            return {
                int(r["student_id"]): UserIdentity(
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    email=r.get("email") or "",
                    phone=r.get("phone") or "",
                )
                for r in fetchall(cur)
            }
