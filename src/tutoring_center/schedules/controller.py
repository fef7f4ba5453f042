from __future__ import annotations

from flask import Flask

from ..common.http import ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/classes/<int:class_id>/schedule", methods=["GET"], endpoint="class_schedule")
    def class_schedule(class_id: int):
        view = container.schedule_service.expand_schedule(class_id)
        return ok(view.as_dict())
