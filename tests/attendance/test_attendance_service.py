from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest

from tutoring_center.attendance.model import StudentMark
from tutoring_center.attendance.service import merge_marks
from tutoring_center.classes.model import ClassSchedule
from tutoring_center.core.exceptions import (
    AlreadyExistsError,
    ConcurrentUpdateError,
    EmptyScheduleError,
    InactiveClassError,
    NotFoundError,
    ScheduleIncompleteError,
    ValidationError,
)


def test_create_ledger_numbers_lessons_and_marks_everyone_present(container, classes):
    lessons = container.attendance_service.create_ledger(1)

    assert [l.lesson_number for l in lessons] == [1, 2, 3, 4]
    assert [l.lesson_date for l in lessons] == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8), date(2024, 1, 10)]
    for lesson in lessons:
        s = lesson.summary()
        assert s.present_number + s.absent_number == s.total_students == 3
        assert s.absent_number == 0
    assert classes.get_by_id(1).ledger_id is not None


def test_create_ledger_twice_is_a_conflict(container):
    container.attendance_service.create_ledger(1)
    with pytest.raises(AlreadyExistsError):
        container.attendance_service.create_ledger(1)


def test_create_ledger_rejects_missing_inactive_and_empty_classes(container, classes, class_factory):
    classes.add(class_factory(2, is_available=False))
    classes.add(
        class_factory(
            3,
            schedule=ClassSchedule(start_date=date(2024, 1, 2), end_date=date(2024, 1, 2), days_of_lesson_in_week=(1,)),
        )
    )
    classes.add(class_factory(4, schedule=ClassSchedule()))

    with pytest.raises(NotFoundError):
        container.attendance_service.create_ledger(99)
    with pytest.raises(InactiveClassError):
        container.attendance_service.create_ledger(2)
    with pytest.raises(EmptyScheduleError):
        container.attendance_service.create_ledger(3)
    with pytest.raises(ScheduleIncompleteError):
        container.attendance_service.create_ledger(4)


def test_create_ledger_with_empty_roster(container, classes, class_factory):
    classes.add(class_factory(5, student_ids=()))

    lessons = container.attendance_service.create_ledger(5)

    assert len(lessons) == 4
    assert all(l.summary().total_students == 0 for l in lessons)


def test_list_summaries(container):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 2, [StudentMark(101, True)])

    summaries = service.list_summaries(1)

    assert summaries[1] == {
        "date": "2024-01-03",
        "lessonNumber": 2,
        "summary": {"presentNumber": 2, "absentNumber": 1, "totalStudents": 3},
    }


def test_merge_marks_skips_unknown_and_last_flag_wins():
    current = (StudentMark(1), StudentMark(2), StudentMark(3, True))

    merged, updated = merge_marks(current, [StudentMark(2, True), StudentMark(42, True), StudentMark(2, False)])

    assert merged == (StudentMark(1), StudentMark(2, False), StudentMark(3, True))
    assert updated == [StudentMark(2, False)]


def test_record_attendance_with_unknown_student_updates_nothing(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    before = ledgers.get_lesson(class_id=1, lesson_number=1)

    result = service.record_attendance(1, 1, [StudentMark(999, True)])

    assert result.updated_count == 0
    assert result.as_dict() == {"updatedCount": 0, "updatedEntries": []}
    assert ledgers.get_lesson(class_id=1, lesson_number=1) == before


def test_record_attendance_partial_update(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)

    result = service.record_attendance(1, 3, [StudentMark(101, True), StudentMark(999, True)])

    assert result.updated_count == 1
    lesson = ledgers.get_lesson(class_id=1, lesson_number=3)
    assert lesson.mark_for(101).is_absent is True
    assert lesson.mark_for(102).is_absent is False
    assert lesson.mark_for(103).is_absent is False


def test_record_attendance_missing_lesson(container):
    container.attendance_service.create_ledger(1)
    with pytest.raises(NotFoundError):
        container.attendance_service.record_attendance(1, 9, [StudentMark(101, True)])


def test_record_attendance_retries_after_concurrent_write(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    ledgers.conflicts = 2

    result = service.record_attendance(1, 1, [StudentMark(102, True)])

    assert result.updated_count == 1
    assert ledgers.get_lesson(class_id=1, lesson_number=1).mark_for(102).is_absent is True


def test_record_attendance_gives_up_after_retry_budget(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    ledgers.conflicts = 3

    with pytest.raises(ConcurrentUpdateError):
        service.record_attendance(1, 1, [StudentMark(102, True)])


def test_absence_flips_adjust_tuition_credit(container):
    service = container.attendance_service
    service.create_ledger(1)

    service.record_attendance(1, 1, [StudentMark(101, True)])
    service.record_attendance(1, 2, [StudentMark(101, True)])
    # Re-sending the same flag is not a new absence.
    service.record_attendance(1, 2, [StudentMark(101, True)])

    adj = container.tuition_service.get_adjustment(student_id=101, class_id=1, month=1, year=2024)
    assert adj.absent_lessons == 2
    assert adj.absence_credit == Decimal("160000.00")

    service.record_attendance(1, 1, [StudentMark(101, False)])

    adj = container.tuition_service.get_adjustment(student_id=101, class_id=1, month=1, year=2024)
    assert adj.absent_lessons == 1
    assert adj.absence_credit == Decimal("80000.00")


def test_class_without_fee_counts_absences_with_zero_credit(container, classes, class_factory):
    classes.add(class_factory(6, fee_per_lesson=None))
    service = container.attendance_service
    service.create_ledger(6)

    service.record_attendance(6, 1, [StudentMark(101, True)])

    adj = container.tuition_service.get_adjustment(student_id=101, class_id=6, month=1, year=2024)
    assert adj.absent_lessons == 1
    assert adj.absence_credit == Decimal("0.00")


def test_delete_lesson_reverses_absence_credits(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 4, [StudentMark(101, True), StudentMark(102, True)])

    result = service.delete_lesson(1, 4)

    assert result == {"lessonNumber": 4, "reversedAbsences": 2}
    assert ledgers.get_lesson(class_id=1, lesson_number=4) is None
    # Remaining lessons keep their numbers.
    assert [l.lesson_number for l in ledgers.list_lessons(1)] == [1, 2, 3]
    for sid in (101, 102):
        adj = container.tuition_service.get_adjustment(student_id=sid, class_id=1, month=1, year=2024)
        assert adj.absent_lessons == 0
        assert adj.absence_credit == Decimal("0.00")


def test_delete_lesson_lost_to_concurrent_delete_reverses_nothing(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 1, [StudentMark(101, True)])
    service.record_attendance(1, 2, [StudentMark(101, True)])
    ledgers.before_delete = lambda: service.delete_lesson(1, 1)

    with pytest.raises(NotFoundError):
        service.delete_lesson(1, 1)

    # Only the winning delete gave back the lesson 1 credit.
    adj = container.tuition_service.get_adjustment(student_id=101, class_id=1, month=1, year=2024)
    assert adj.absent_lessons == 1
    assert adj.absence_credit == Decimal("80000.00")


def test_delete_lesson_reverses_absence_recorded_just_before(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 3, [StudentMark(101, True)])
    ledgers.before_delete = lambda: service.record_attendance(1, 3, [StudentMark(102, True)])

    result = service.delete_lesson(1, 3)

    assert result == {"lessonNumber": 3, "reversedAbsences": 2}
    assert ledgers.get_lesson(class_id=1, lesson_number=3) is None
    for sid in (101, 102):
        adj = container.tuition_service.get_adjustment(student_id=sid, class_id=1, month=1, year=2024)
        assert adj.absent_lessons == 0
        assert adj.absence_credit == Decimal("0.00")


def test_delete_lesson_gives_up_when_lesson_keeps_changing(container, ledgers):
    service = container.attendance_service
    service.create_ledger(1)
    flags = iter([True, False, True])

    def flip():
        service.record_attendance(1, 2, [StudentMark(103, next(flags))])
        ledgers.before_delete = flip

    ledgers.before_delete = flip

    with pytest.raises(ConcurrentUpdateError):
        service.delete_lesson(1, 2)

    ledgers.before_delete = None
    lesson = ledgers.get_lesson(class_id=1, lesson_number=2)
    assert lesson is not None
    assert lesson.mark_for(103).is_absent is True
    adj = container.tuition_service.get_adjustment(student_id=103, class_id=1, month=1, year=2024)
    assert adj.absent_lessons == 1


def test_tuition_failure_after_marks_saved_is_logged(container, ledgers, tuition, caplog):
    service = container.attendance_service
    service.create_ledger(1)
    tuition.broken = True

    with caplog.at_level(logging.ERROR, logger="tutoring_center.attendance.service"):
        with pytest.raises(RuntimeError):
            service.record_attendance(1, 2, [StudentMark(101, True)])

    lesson = ledgers.get_lesson(class_id=1, lesson_number=2)
    assert lesson.mark_for(101).is_absent is True
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].lesson_id == lesson.lesson_id
    assert errors[0].newly_absent == [101]


def test_lesson_detail_uses_placeholders_for_unknown_identities(container):
    service = container.attendance_service
    service.create_ledger(1)

    detail = service.get_lesson_detail(1, 1)

    names = [s["fullName"] for s in detail["students"]]
    assert names == ["An Nguyen", "Bao Pham", "Unknown"]
    assert detail["students"][0]["email"] == "an@example.com"
    assert detail["summary"]["totalStudents"] == 3


def test_lesson_detail_survives_directory_outage(container, users):
    container.attendance_service.create_ledger(1)
    users.broken = True

    detail = container.attendance_service.get_lesson_detail(1, 1)

    assert {s["fullName"] for s in detail["students"]} == {"Unknown"}


def test_student_summary_filters_by_date_range(container):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 2, [StudentMark(101, True)])

    summary = service.student_summary(1, 101, start=date(2024, 1, 2), end=date(2024, 1, 8))

    assert summary["totalLessons"] == 2
    assert summary["presentCount"] == 1
    assert summary["absentCount"] == 1
    assert [r["lessonNumber"] for r in summary["records"]] == [2, 3]

    with pytest.raises(ValidationError):
        service.student_summary(1, 101, start=date(2024, 1, 8), end=date(2024, 1, 2))


def test_class_stats(container):
    service = container.attendance_service
    service.create_ledger(1)
    service.record_attendance(1, 1, [StudentMark(101, True)])
    service.record_attendance(1, 2, [StudentMark(101, True), StudentMark(102, True)])

    stats = service.class_stats(1)

    assert stats["totalSessions"] == 4
    # 9 present out of 12 marks
    assert stats["averageAttendance"] == 75.0
    assert stats["attendanceByStudent"]["101"] == {"present": 2, "absent": 2, "total": 4, "rate": 50.0}
    assert stats["attendanceByStudent"]["103"]["rate"] == 100.0
