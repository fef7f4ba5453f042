from __future__ import annotations

from datetime import datetime

from flask import Flask, request

from ..common.http import actor_id, json_body, ok, optional_int
from ..core.exceptions import ValidationError
from ..container import Container
from .model import WageFilters


def _filters() -> WageFilters:
    return WageFilters.build(
        teacher_id=optional_int("teacherId"),
        class_id=optional_int("classId"),
        month=optional_int("month"),
        year=optional_int("year"),
        payment_status=request.args.get("paymentStatus") or None,
    )


def _parse_datetime(value) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("paymentDate must be an ISO-8601 date or datetime")


def register(app: Flask, container: Container) -> None:
    service = container.wage_service

    @app.route("/api/wages/calculate", methods=["POST"], endpoint="calculate_wages")
    def calculate_wages():
        body = json_body()
        report = service.run_monthly_calculation(body.get("month"), body.get("year"), actor_id())
        return ok(report.as_dict(), "Wage calculation finished")

    @app.route("/api/wages", methods=["GET"], endpoint="list_wages")
    def list_wages():
        return ok(service.list_wages(_filters()))

    @app.route("/api/wages/statistics", methods=["GET"], endpoint="wage_statistics")
    def wage_statistics():
        return ok(service.statistics(_filters()))

    @app.route("/api/wages/outstanding", methods=["GET"], endpoint="wage_outstanding")
    def wage_outstanding():
        return ok(service.outstanding(_filters()))

    @app.route("/api/wages/unpaid", methods=["GET"], endpoint="unpaid_wages")
    def unpaid_wages():
        return ok(service.unpaid_wages(_filters()))

    @app.route("/api/wages/settlements", methods=["POST"], endpoint="settle_wages")
    def settle_wages():
        body = json_body()
        settled = service.bulk_settle(body.get("teacherId"), body.get("month"), body.get("year"), actor_id())
        return ok({"settledCount": len(settled), "records": [r.as_dict() for r in settled]}, "Wages settled")

    @app.route("/api/wages/<int:wage_id>", methods=["GET"], endpoint="get_wage")
    def get_wage(wage_id: int):
        return ok(service.get_wage(wage_id))

    @app.route("/api/wages/<int:wage_id>", methods=["PATCH"], endpoint="update_wage")
    def update_wage(wage_id: int):
        body = json_body()
        payment_date = body.get("paymentDate")
        record = service.update_wage_record(
            wage_id,
            lesson_taught=body.get("lessonTaught"),
            amount=body.get("amount"),
            payment_date=_parse_datetime(payment_date) if payment_date else None,
            paid_by=body.get("paidBy"),
        )
        return ok(record.as_dict(), "Wage record updated")

    @app.route("/api/wages/<int:wage_id>", methods=["DELETE"], endpoint="delete_wage")
    def delete_wage(wage_id: int):
        service.delete_wage_record(wage_id)
        return ok({"wageId": wage_id}, "Wage record deleted")

    @app.route("/api/wages/<int:wage_id>/payments", methods=["POST"], endpoint="pay_wage")
    def pay_wage(wage_id: int):
        body = json_body()
        if "paidAmount" not in body:
            raise ValidationError("paidAmount is required")
        # Money arrives as a JSON string or number; floats are converted via str.
        record = service.apply_payment(wage_id, body["paidAmount"], actor_id())
        return ok(record.as_dict(), "Payment applied")

    @app.route("/api/teachers/<int:teacher_id>/wages/summary", methods=["GET"], endpoint="teacher_wage_summary")
    def teacher_wage_summary(teacher_id: int):
        return ok(service.teacher_summary(teacher_id))
