from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import PaymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal
from .model import WageFilters, WageRecord
from .repository import WageRepository

_COLUMNS = """
    wage_id, teacher_id, class_id, month, year, lesson_taught, calculated_amount, amount,
    remaining_amount, payment_status, payment_date, paid_by, version
"""


def _to_model(r: dict) -> WageRecord:
    return WageRecord(
        wage_id=int(r["wage_id"]),
        teacher_id=int(r["teacher_id"]),
        class_id=int(r["class_id"]),
        month=int(r["month"]),
        year=int(r["year"]),
        lesson_taught=int(r["lesson_taught"]),
        calculated_amount=to_decimal(r["calculated_amount"]),
        amount=to_decimal(r["amount"]),
        remaining_amount=to_decimal(r["remaining_amount"]),
        payment_status=PaymentStatus(r["payment_status"]),
        payment_date=r.get("payment_date"),
        paid_by=int(r["paid_by"]) if r.get("paid_by") is not None else None,
        version=int(r["version"]),
    )


class MySQLWageRepository(WageRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, wage_id: int) -> Optional[WageRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM wage_records WHERE wage_id=%s", (int(wage_id),))
            r = fetchone(cur)
            return _to_model(r) if r else None

    def find_by_key(self, *, teacher_id: int, class_id: int, month: int, year: int) -> Optional[WageRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM wage_records
                WHERE teacher_id=%s AND class_id=%s AND month=%s AND year=%s
                """,
                (int(teacher_id), int(class_id), int(month), int(year)),
            )
            r = fetchone(cur)
            return _to_model(r) if r else None

    def insert(self, record: WageRecord) -> Optional[int]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO wage_records(
                        teacher_id, class_id, month, year, lesson_taught, calculated_amount,
                        amount, remaining_amount, payment_status, payment_date, paid_by, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                    """,
                    (
                        record.teacher_id,
                        record.class_id,
                        record.month,
                        record.year,
                        record.lesson_taught,
                        record.calculated_amount,
                        record.amount,
                        record.remaining_amount,
                        record.payment_status.value,
                        record.payment_date,
                        record.paid_by,
                    ),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                return None
            raise

    @staticmethod
    def _update(cur, record: WageRecord, expected_version: int) -> bool:
        cur.execute(
            """
            UPDATE wage_records
            SET lesson_taught=%s, calculated_amount=%s, amount=%s, remaining_amount=%s,
                payment_status=%s, payment_date=%s, paid_by=%s, version=version+1
            WHERE wage_id=%s AND version=%s
            """,
            (
                record.lesson_taught,
                record.calculated_amount,
                record.amount,
                record.remaining_amount,
                record.payment_status.value,
                record.payment_date,
                record.paid_by,
                record.wage_id,
                int(expected_version),
            ),
        )
        return cur.rowcount > 0

    def update(self, record: WageRecord, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._update(cur, record, expected_version)

    def delete_if_unpaid(self, wage_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM wage_records WHERE wage_id=%s AND payment_status=%s AND amount=0",
                (int(wage_id), PaymentStatus.UNPAID.value),
            )
            return cur.rowcount > 0

    def settle_unpaid(
        self,
        *,
        teacher_id: int,
        month: int,
        year: int,
        apply: Callable[[WageRecord], WageRecord],
    ) -> Sequence[WageRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM wage_records
                WHERE teacher_id=%s AND month=%s AND year=%s
                  AND payment_status=%s AND calculated_amount > 0
                ORDER BY class_id
                FOR UPDATE
                """,
                (int(teacher_id), int(month), int(year), PaymentStatus.UNPAID.value),
            )
            settled: list[WageRecord] = []
            for current in (_to_model(r) for r in fetchall(cur)):
                new = apply(current)
                # Rows are locked, so the version check cannot fail here.
                self._update(cur, new, current.version)
                settled.append(replace(new, version=current.version + 1))
            return settled

    def list(self, filters: WageFilters) -> Sequence[WageRecord]:
        clauses = ["1=1"]
        params: list[object] = []
        if filters.teacher_id is not None:
            clauses.append("teacher_id=%s")
            params.append(filters.teacher_id)
        if filters.class_id is not None:
            clauses.append("class_id=%s")
            params.append(filters.class_id)
        if filters.month is not None:
            clauses.append("month=%s")
            params.append(filters.month)
        if filters.year is not None:
            clauses.append("year=%s")
            params.append(filters.year)
        if filters.payment_status is not None:
            clauses.append("payment_status=%s")
            params.append(filters.payment_status.value)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM wage_records
                WHERE {where}
                ORDER BY year DESC, month DESC, teacher_id ASC, class_id ASC
                """,
                tuple(params),
            )
            return [_to_model(r) for r in fetchall(cur)]
