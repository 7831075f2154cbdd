"""Error types raised by handlers and the JSON responses they map to."""
from __future__ import annotations

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    """Base class for failures reported to the client.

    ``error`` is the stable machine-readable kind, ``message`` the human
    readable one. Subclasses may add extra fields through ``payload``.
    """

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, *, error: str | None = None, **payload: object) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        self.payload = payload

    def to_dict(self) -> dict[str, object]:
        body: dict[str, object] = {"error": self.error, "message": self.message}
        body.update(self.payload)
        return body


class ValidationError(ApiError):
    status_code = 400
    error = "invalid_payload"


class Unauthenticated(ApiError):
    status_code = 401
    error = "unauthorized"


class Forbidden(ApiError):
    status_code = 403
    error = "forbidden"


class NotFound(ApiError):
    status_code = 404
    error = "not_found"


class InvalidTransition(ApiError):
    """A status move the order state machine does not allow."""

    status_code = 400
    error = "invalid_transition"

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot change status from '{current}' to '{requested}'",
            **{"from": current, "to": requested},
        )
        self.current = current
        self.requested = requested


class Conflict(ApiError):
    """The row changed between read and write; the client may re-fetch and retry."""

    status_code = 409
    error = "conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=True)


class DuplicateEntry(ApiError):
    status_code = 400
    error = "duplicate_entry"


class InternalError(ApiError):
    status_code = 500
    error = "database_error"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Unhandled database error", exc_info=exc)
        return jsonify({"error": "database_error", "message": "database operation failed"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        current_app.logger.exception("Unhandled error", exc_info=exc)
        error = InternalError("internal server error", error="internal_error")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_unknown_route(_exc):
        return jsonify({"error": "not_found", "message": "resource not found"}), 404

    @app.errorhandler(405)
    def handle_bad_method(_exc):
        return jsonify({"error": "method_not_allowed", "message": "method not allowed"}), 405
