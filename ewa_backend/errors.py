from typing import List, Optional

from flask import jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge


class ApiError(Exception):

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class ValidationError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class ReferentialIntegrityError(ApiError):
    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401


class GatewayError(ApiError):
    status_code = 500


def error_response(message: str, status_code: int, errors: Optional[List[str]] = None):
    body = {"success": False, "message": message, "data": None}
    if errors:
        body["errors"] = errors
    return jsonify(body), status_code


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return error_response(exc.message, exc.status_code, exc.errors)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_upload_too_large(exc: RequestEntityTooLarge):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return error_response(f"Upload is too large. Maximum request size is {limit_mb}MB.", 400)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception("Unhandled error while serving request: %s", exc)
        return error_response(str(exc) or "Internal server error.", 500)
