"""Render errors as callable-function error envelopes."""

from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import ERRORS_BY_CODE, AppError, InternalError

error_handlers_bp = Blueprint("error_handlers", __name__)

HTTP_STATUSES = {
    400: "INVALID_ARGUMENT",
    401: "UNAUTHENTICATED",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    405: "INVALID_ARGUMENT",
    409: "ALREADY_EXISTS",
}


def callable_status(code):
    """Translate an error code such as ``not-found`` to ``NOT_FOUND``."""
    if code not in ERRORS_BY_CODE:
        return "INTERNAL"
    return code.upper().replace("-", "_")


def error_response(status, message, status_code):
    """Build the JSON body and status code for a failed call."""
    return jsonify(error={"status": status, "message": message}), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles expected application errors."""
    status = callable_status(error.code)
    if status == "INTERNAL":
        current_app.logger.error(f"Application Error: {error.message}")
        return error_response(status, InternalError().message, 500)
    current_app.logger.warning(f"{status}: {error.message}")
    return error_response(status, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_error(error):
    """Handles routing and protocol errors raised by Flask itself."""
    status = HTTP_STATUSES.get(error.code, "INTERNAL")
    return error_response(status, error.description, error.code)


@error_handlers_bp.app_errorhandler(Exception)
def handle_unexpected_error(error):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {error}")
    # Avoid exposing raw backend error details to the caller
    return error_response("INTERNAL", InternalError().message, 500)
