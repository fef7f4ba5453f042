from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.exceptions import AlreadyExistsError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_date
from .model import LessonRecord, StudentMark
from .repository import AttendanceLedgerRepository


class MySQLAttendanceLedgerRepository(AttendanceLedgerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, lesson_rows: list[dict]) -> list[LessonRecord]:
        if not lesson_rows:
            return []
        ids = [int(r["lesson_id"]) for r in lesson_rows]
        cur.execute(
            f"""
            SELECT lesson_id, student_id, is_absent
            FROM attendance_marks
            WHERE lesson_id IN ({in_clause(ids)})
            ORDER BY lesson_id, position
            """,
            tuple(ids),
        )
        marks: dict[int, list[StudentMark]] = {}
        for m in fetchall(cur):
            marks.setdefault(int(m["lesson_id"]), []).append(
                StudentMark(student_id=int(m["student_id"]), is_absent=bool(m["is_absent"]))
            )
        return [
            LessonRecord(
                lesson_id=int(r["lesson_id"]),
                class_id=int(r["class_id"]),
                lesson_date=to_date(r["lesson_date"]),
                lesson_number=int(r["lesson_number"]),
                students=tuple(marks.get(int(r["lesson_id"]), ())),
                version=int(r["version"]),
            )
            for r in lesson_rows
        ]

    def get_ledger_id(self, class_id: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT ledger_id FROM attendance_ledgers WHERE class_id=%s", (int(class_id),))
            r = fetchone(cur)
            return int(r["ledger_id"]) if r else None

    def create_ledger(self, *, class_id: int, lesson_dates: Sequence[date], student_ids: Sequence[int]) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("INSERT INTO attendance_ledgers(class_id) VALUES(%s)", (int(class_id),))
                ledger_id = int(cur.lastrowid)

                for number, lesson_date in enumerate(lesson_dates, start=1):
                    cur.execute(
                        """
                        INSERT INTO attendance_lessons(ledger_id, class_id, lesson_date, lesson_number)
                        VALUES(%s,%s,%s,%s)
                        """,
                        (ledger_id, int(class_id), lesson_date, number),
                    )
                    lesson_id = int(cur.lastrowid)
                    if student_ids:
                        cur.executemany(
                            """
                            INSERT INTO attendance_marks(lesson_id, position, student_id, is_absent)
                            VALUES(%s,%s,%s,0)
                            """,
                            [(lesson_id, pos, int(sid)) for pos, sid in enumerate(student_ids)],
                        )
                return ledger_id
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise AlreadyExistsError("Attendance ledger already exists for this class") from e
            raise

    def list_lessons(self, class_id: int) -> Sequence[LessonRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT lesson_id, class_id, lesson_date, lesson_number, version
                FROM attendance_lessons
                WHERE class_id=%s
                ORDER BY lesson_number ASC
                """,
                (int(class_id),),
            )
            return self._load(cur, fetchall(cur))

    def get_lesson(self, *, class_id: int, lesson_number: int) -> Optional[LessonRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT lesson_id, class_id, lesson_date, lesson_number, version
                FROM attendance_lessons
                WHERE class_id=%s AND lesson_number=%s
                """,
                (int(class_id), int(lesson_number)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return self._load(cur, [r])[0]

    def save_marks(self, *, lesson_id: int, marks: Sequence[StudentMark], expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_lessons SET version=version+1 WHERE lesson_id=%s AND version=%s",
                (int(lesson_id), int(expected_version)),
            )
            if cur.rowcount == 0:
                return False
            cur.executemany(
                "UPDATE attendance_marks SET is_absent=%s WHERE lesson_id=%s AND student_id=%s",
                [(1 if m.is_absent else 0, int(lesson_id), int(m.student_id)) for m in marks],
            )
            return True

    def delete_lesson(self, *, lesson_id: int, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # attendance_marks rows go with it (ON DELETE CASCADE).
            cur.execute(
                "DELETE FROM attendance_lessons WHERE lesson_id=%s AND version=%s",
                (int(lesson_id), int(expected_version)),
            )
            return cur.rowcount > 0

    def lessons_between(self, *, start: date, end: date) -> Sequence[LessonRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT lesson_id, class_id, lesson_date, lesson_number, version
                FROM attendance_lessons
                WHERE lesson_date >= %s AND lesson_date < %s
                ORDER BY class_id, lesson_number
                """,
                (start, end),
            )
            return self._load(cur, fetchall(cur))
