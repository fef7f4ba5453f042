from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

import pytest

from tutoring_center.attendance.model import LessonRecord, StudentMark
from tutoring_center.classes.model import ClassSchedule, TutoringClass
from tutoring_center.container import Container, assemble
from tutoring_center.core.enums import PaymentStatus
from tutoring_center.core.exceptions import AlreadyExistsError
from tutoring_center.tuition.model import TuitionAdjustment
from tutoring_center.users.model import Teacher, UserIdentity
from tutoring_center.wages.model import WageFilters, WageRecord

FIXED_NOW = datetime(2024, 2, 5, 9, 30, 0)


class InMemoryClasses:
    def __init__(self, classes: Sequence[TutoringClass] = ()):
        self.by_id: dict[int, TutoringClass] = {c.class_id: c for c in classes}

    def add(self, cls: TutoringClass) -> None:
        self.by_id[cls.class_id] = cls

    def get_by_id(self, class_id: int) -> Optional[TutoringClass]:
        return self.by_id.get(int(class_id))

    def get_many(self, class_ids) -> dict[int, TutoringClass]:
        return {int(cid): self.by_id[int(cid)] for cid in class_ids if int(cid) in self.by_id}

    def set_ledger_id(self, *, class_id: int, ledger_id: int) -> bool:
        cls = self.by_id.get(int(class_id))
        if not cls:
            return False
        self.by_id[cls.class_id] = replace(cls, ledger_id=int(ledger_id))
        return True


class InMemoryTeachers:
    def __init__(self, teachers: Sequence[Teacher] = ()):
        self.by_id: dict[int, Teacher] = {t.teacher_id: t for t in teachers}

    def add(self, teacher: Teacher) -> None:
        self.by_id[teacher.teacher_id] = teacher

    def get_by_id(self, teacher_id: int) -> Optional[Teacher]:
        return self.by_id.get(int(teacher_id))

    def get_many(self, teacher_ids) -> dict[int, Teacher]:
        return {int(t): self.by_id[int(t)] for t in teacher_ids if int(t) in self.by_id}


class InMemoryUsers:
    def __init__(self, identities: Optional[dict[int, UserIdentity]] = None):
        self.identities = dict(identities or {})
        self.broken = False

    def student_identities(self, student_ids) -> dict[int, UserIdentity]:
        if self.broken:
            raise ConnectionError("directory unavailable")
        return {int(s): self.identities[int(s)] for s in student_ids if int(s) in self.identities}


class InMemoryLedgers:
    def __init__(self):
        self.ledgers: dict[int, int] = {}
        self.lessons: dict[int, LessonRecord] = {}
        self._next_ledger = 1
        self._next_lesson = 1
        # Number of upcoming save_marks calls that lose their race.
        self.conflicts = 0
        # Runs once right before the next delete, simulating a concurrent writer.
        self.before_delete: Optional[Callable[[], None]] = None

    def get_ledger_id(self, class_id: int) -> Optional[int]:
        return self.ledgers.get(int(class_id))

    def create_ledger(self, *, class_id: int, lesson_dates, student_ids) -> int:
        if int(class_id) in self.ledgers:
            raise AlreadyExistsError("Attendance ledger already exists for this class")
        ledger_id = self._next_ledger
        self._next_ledger += 1
        self.ledgers[int(class_id)] = ledger_id
        for number, d in enumerate(lesson_dates, start=1):
            self.add_lesson(class_id=int(class_id), lesson_date=d, lesson_number=number, student_ids=student_ids)
        return ledger_id

    def add_lesson(self, *, class_id: int, lesson_date: date, lesson_number: int, student_ids, absent=()) -> LessonRecord:
        lesson = LessonRecord(
            lesson_id=self._next_lesson,
            class_id=class_id,
            lesson_date=lesson_date,
            lesson_number=lesson_number,
            students=tuple(StudentMark(student_id=int(s), is_absent=int(s) in set(absent)) for s in student_ids),
        )
        self._next_lesson += 1
        self.lessons[lesson.lesson_id] = lesson
        return lesson

    def list_lessons(self, class_id: int):
        items = [l for l in self.lessons.values() if l.class_id == int(class_id)]
        return sorted(items, key=lambda l: l.lesson_number)

    def get_lesson(self, *, class_id: int, lesson_number: int) -> Optional[LessonRecord]:
        for l in self.lessons.values():
            if l.class_id == int(class_id) and l.lesson_number == int(lesson_number):
                return l
        return None

    def save_marks(self, *, lesson_id: int, marks, expected_version: int) -> bool:
        current = self.lessons.get(int(lesson_id))
        if current is None:
            return False
        if self.conflicts:
            self.conflicts -= 1
            self.lessons[current.lesson_id] = replace(current, version=current.version + 1)
            return False
        if current.version != expected_version:
            return False
        self.lessons[current.lesson_id] = replace(current, students=tuple(marks), version=current.version + 1)
        return True

    def delete_lesson(self, *, lesson_id: int, expected_version: int) -> bool:
        hook, self.before_delete = self.before_delete, None
        if hook is not None:
            hook()
        current = self.lessons.get(int(lesson_id))
        if current is None or current.version != expected_version:
            return False
        del self.lessons[current.lesson_id]
        return True

    def lessons_between(self, *, start: date, end: date):
        items = [l for l in self.lessons.values() if start <= l.lesson_date < end]
        return sorted(items, key=lambda l: (l.class_id, l.lesson_date))


class InMemoryTuition:
    def __init__(self):
        self.rows: dict[tuple[int, int, int, int], TuitionAdjustment] = {}
        self.broken = False

    def adjust(self, *, student_id, class_id, month, year, lessons_delta, credit_delta) -> None:
        if self.broken:
            raise RuntimeError("tuition store unavailable")
        key = (student_id, class_id, month, year)
        row = self.rows.get(key) or TuitionAdjustment(student_id=student_id, class_id=class_id, month=month, year=year)
        self.rows[key] = replace(
            row,
            absent_lessons=max(0, row.absent_lessons + lessons_delta),
            absence_credit=max(Decimal("0.00"), row.absence_credit + credit_delta),
        )

    def get(self, *, student_id, class_id, month, year) -> Optional[TuitionAdjustment]:
        return self.rows.get((student_id, class_id, month, year))


class InMemoryWages:
    def __init__(self):
        self.rows: dict[int, WageRecord] = {}
        self._next_id = 1
        # Number of upcoming update calls that lose their race.
        self.conflicts = 0
        # Records slipped in right before the next insert, simulating a concurrent creator.
        self.racing_inserts: list[WageRecord] = []

    def put(self, record: WageRecord) -> WageRecord:
        record = replace(record, wage_id=self._next_id)
        self._next_id += 1
        self.rows[record.wage_id] = record
        return record

    def get_by_id(self, wage_id: int) -> Optional[WageRecord]:
        return self.rows.get(int(wage_id))

    def find_by_key(self, *, teacher_id, class_id, month, year) -> Optional[WageRecord]:
        for r in self.rows.values():
            if r.key == (teacher_id, class_id, month, year):
                return r
        return None

    def insert(self, record: WageRecord) -> Optional[int]:
        while self.racing_inserts:
            self.put(self.racing_inserts.pop(0))
        if self.find_by_key(teacher_id=record.teacher_id, class_id=record.class_id, month=record.month, year=record.year):
            return None
        return self.put(replace(record, version=1)).wage_id

    def update(self, record: WageRecord, *, expected_version: int) -> bool:
        current = self.rows.get(record.wage_id)
        if current is None:
            return False
        if self.conflicts:
            self.conflicts -= 1
            self.rows[current.wage_id] = replace(current, version=current.version + 1)
            return False
        if current.version != expected_version:
            return False
        self.rows[record.wage_id] = replace(record, version=current.version + 1)
        return True

    def delete_if_unpaid(self, wage_id: int) -> bool:
        current = self.rows.get(int(wage_id))
        if current is None or current.payment_status != PaymentStatus.UNPAID:
            return False
        del self.rows[current.wage_id]
        return True

    def settle_unpaid(self, *, teacher_id, month, year, apply: Callable[[WageRecord], WageRecord]):
        out = []
        for r in sorted(self.rows.values(), key=lambda r: r.class_id):
            if (r.teacher_id, r.month, r.year) != (teacher_id, month, year):
                continue
            if r.payment_status != PaymentStatus.UNPAID or r.calculated_amount <= 0:
                continue
            new = replace(apply(r), version=r.version + 1)
            self.rows[r.wage_id] = new
            out.append(new)
        return out

    def list(self, filters: WageFilters):
        items = [r for r in self.rows.values() if filters.matches(r)]
        return sorted(items, key=lambda r: (-r.year, -r.month, r.teacher_id, r.class_id))


def make_class(class_id: int = 1, **overrides) -> TutoringClass:
    fields = dict(
        class_id=class_id,
        class_name=f"Class {class_id}",
        grade=9,
        year=2024,
        is_available=True,
        teacher_id=10,
        fee_per_lesson=Decimal("80000.00"),
        schedule=ClassSchedule(
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 10),
            days_of_lesson_in_week=(1, 3),
        ),
        student_ids=(101, 102, 103),
    )
    fields.update(overrides)
    return TutoringClass(**fields)


@pytest.fixture
def classes() -> InMemoryClasses:
    return InMemoryClasses([make_class(1)])


@pytest.fixture
def teachers() -> InMemoryTeachers:
    return InMemoryTeachers(
        [
            Teacher(teacher_id=10, user_id=2, wage_per_lesson=Decimal("150000.00"), full_name="Alice Tran"),
            Teacher(teacher_id=11, user_id=3, wage_per_lesson=Decimal("120000.00"), full_name="Binh Le"),
        ]
    )


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers(
        {
            101: UserIdentity(user_id=5, full_name="An Nguyen", email="an@example.com", phone="0901"),
            102: UserIdentity(user_id=6, full_name="Bao Pham"),
        }
    )


@pytest.fixture
def ledgers() -> InMemoryLedgers:
    return InMemoryLedgers()


@pytest.fixture
def tuition() -> InMemoryTuition:
    return InMemoryTuition()


@pytest.fixture
def wages() -> InMemoryWages:
    return InMemoryWages()


@pytest.fixture
def container(classes, teachers, users, ledgers, tuition, wages) -> Container:
    return assemble(
        classes_repo=classes,
        teachers_repo=teachers,
        users_repo=users,
        ledgers_repo=ledgers,
        tuition_repo=tuition,
        wages_repo=wages,
        write_retries=3,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def app(container, monkeypatch):
    from tutoring_center.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    flask_app = create_app(container)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def class_factory():
    return make_class


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
