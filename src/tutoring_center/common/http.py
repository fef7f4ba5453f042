from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.enums import ErrorCategory
from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.STATE: 422,
}


def ok(data=None, message: str = "OK", status: int = 200):
    return jsonify({"success": True, "message": message, "data": data}), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def actor_id() -> int:
    value = request.headers.get("X-Actor-Id", "")
    if not value.isdigit() or int(value) <= 0:
        raise ValidationError("X-Actor-Id header is required")
    return int(value)


def optional_int(name: str) -> int | None:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    if not value.lstrip("-").isdigit():
        raise ValidationError(f"{name} must be an integer")
    return int(value)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = _STATUS_BY_CATEGORY.get(e.category, 400)
        return jsonify({"success": False, "error": e.kind, "message": e.message}), status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        # Let Flask render its own HTTP errors (404 routes, 405, ...).
        code = getattr(e, "code", None)
        if isinstance(code, int):
            return jsonify({"success": False, "error": "http_error", "message": str(e)}), code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"success": False, "error": "internal", "message": "Internal server error"}), 500
