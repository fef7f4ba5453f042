from __future__ import annotations

from datetime import date
from typing import Optional

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, ok, optional_int
from ..core.exceptions import ValidationError
from ..container import Container
from .model import StudentMark


def _parse_flags(body: dict) -> list[StudentMark]:
    students = body.get("students")
    if not isinstance(students, list):
        raise ValidationError("students must be a list")

    flags = []
    for item in students:
        if not isinstance(item, dict) or "studentId" not in item:
            raise ValidationError("Each entry needs a studentId")
        try:
            student_id = int(item["studentId"])
        except (TypeError, ValueError):
            raise ValidationError("studentId must be an integer")
        is_absent = item.get("isAbsent", False)
        if not isinstance(is_absent, bool):
            raise ValidationError("isAbsent must be true or false")
        flags.append(StudentMark(student_id=student_id, is_absent=is_absent))
    return flags


def _date_arg(name: str) -> Optional[date]:
    v = (request.args.get(name) or "").strip()
    if not v:
        return None
    try:
        return parse_iso_date(v)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/classes/<int:class_id>/attendance", methods=["POST"], endpoint="create_attendance_ledger")
    def create_attendance_ledger(class_id: int):
        lessons = service.create_ledger(class_id)
        data = {
            "classId": class_id,
            "totalLessons": len(lessons),
            "lessons": [
                {"date": l.lesson_date.isoformat(), "lessonNumber": l.lesson_number, "summary": l.summary().as_dict()}
                for l in lessons
            ],
        }
        return ok(data, "Attendance ledger created", 201)

    @app.route("/api/classes/<int:class_id>/attendance", methods=["GET"], endpoint="attendance_summaries")
    def attendance_summaries(class_id: int):
        return ok(service.list_summaries(class_id))

    @app.route("/api/classes/<int:class_id>/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    def attendance_stats(class_id: int):
        return ok(service.class_stats(class_id))

    @app.route(
        "/api/classes/<int:class_id>/attendance/students/<int:student_id>",
        methods=["GET"],
        endpoint="student_attendance",
    )
    def student_attendance(class_id: int, student_id: int):
        data = service.student_summary(class_id, student_id, start=_date_arg("start"), end=_date_arg("end"))
        return ok(data)

    @app.route(
        "/api/classes/<int:class_id>/attendance/<int:lesson_number>",
        methods=["GET"],
        endpoint="attendance_lesson_detail",
    )
    def attendance_lesson_detail(class_id: int, lesson_number: int):
        return ok(service.get_lesson_detail(class_id, lesson_number))

    @app.route(
        "/api/classes/<int:class_id>/attendance/<int:lesson_number>",
        methods=["PATCH"],
        endpoint="record_attendance",
    )
    def record_attendance(class_id: int, lesson_number: int):
        flags = _parse_flags(json_body())
        result = service.record_attendance(class_id, lesson_number, flags)
        return ok(result.as_dict(), "Attendance updated")

    @app.route(
        "/api/classes/<int:class_id>/attendance/<int:lesson_number>",
        methods=["DELETE"],
        endpoint="delete_attendance_lesson",
    )
    def delete_attendance_lesson(class_id: int, lesson_number: int):
        return ok(service.delete_lesson(class_id, lesson_number), "Attendance record deleted")

    @app.route(
        "/api/classes/<int:class_id>/students/<int:student_id>/tuition",
        methods=["GET"],
        endpoint="student_tuition_adjustment",
    )
    def student_tuition_adjustment(class_id: int, student_id: int):
        month = optional_int("month")
        year = optional_int("year")
        if month is None or year is None:
            raise ValidationError("month and year are required")
        adjustment = container.tuition_service.get_adjustment(
            student_id=student_id, class_id=class_id, month=month, year=year
        )
        return ok(adjustment.as_dict())
