"""Error taxonomy shared by the stores and the HTTP layer."""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class RecordsError(Exception):
    """Base error; carries the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(RecordsError):
    status_code = 400


class Unauthorized(RecordsError):
    status_code = 401


class Forbidden(RecordsError):
    status_code = 403


class NotFound(RecordsError):
    status_code = 404


class CorruptStoreError(RecordsError):
    """A persisted JSON file exists but cannot be read as a list of records."""

    status_code = 500


# JSON endpoints; every other path is an HTML page
API_PREFIXES = ("/agro", "/farmreport")
AUTH_PATHS = frozenset({"/register", "/login", "/logout", "/check-session"})


def is_api_request() -> bool:
    path = request.path.rstrip("/") or "/"
    if path in AUTH_PATHS:
        return True
    return any(path == p or path.startswith(p + "/") for p in API_PREFIXES)


def install_error_handlers(app: Flask) -> None:
    @app.errorhandler(RecordsError)
    def handle_records_error(exc: RecordsError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {exc.message}")
        return jsonify({"success": False, "message": exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        if not is_api_request():
            return exc
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({"success": False, "message": "Internal server error"}), 500
