"""
API error envelope.

Service functions raise these; the app-level handlers in `register_error_handlers`
turn them into `{"error": ..., "message": ..., "details": [...]}` JSON responses.
"""
from __future__ import annotations

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 400
    error = "Bad request"

    def __init__(self, message: str | None = None, *, details: list[str] | None = None, error: str | None = None):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details
        if error:
            self.error = error

    def to_dict(self) -> dict:
        body: dict = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ParameterMissing(ApiError):
    status_code = 400
    error = "Parameter missing"


class Unauthorized(ApiError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str | None = None, **kwargs):
        super().__init__(message or "You must be logged in to access this resource", **kwargs)


class Forbidden(ApiError):
    status_code = 403
    error = "Forbidden"

    def __init__(self, message: str | None = None, **kwargs):
        super().__init__(message or "You do not have permission to access this resource", **kwargs)


class NotFound(ApiError):
    status_code = 404
    error = "Record not found"


class ValidationError(ApiError):
    status_code = 422
    error = "Validation failed"

    def __init__(self, details: list[str] | str, message: str | None = None, **kwargs):
        if isinstance(details, str):
            details = [details]
        super().__init__(message or "; ".join(details), details=details, **kwargs)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):  # type: ignore[no-redef]
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"error": "Not found", "message": "The requested resource does not exist"}), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return jsonify({"error": "Method not allowed", "message": str(e.description)}), 405

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return jsonify({"error": "Payload too large", "message": f"File too large. Maximum size is {limit_mb}MB."}), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return jsonify({"error": "Internal server error", "request_id": rid}), 500

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": e.name, "message": e.description}), e.code or 500
