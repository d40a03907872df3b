"""Typed API errors and the handlers that render them.

Every handler raises one of these instead of building an error response by
hand; ``register_error_handlers`` turns them into the uniform
``{"success": false, "message": ...}`` body.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from utils.logger import get_logger

logger = get_logger(__name__)


class ApiException(Exception):
    status = 400

    def __init__(self, message: str, status: int = None, data: dict = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.data = data

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.data:
            body.update(self.data)
        return body


class Unauthorized(ApiException):
    status = 401

    def __init__(self, message: str = "Unauthorized", data: dict = None):
        super().__init__(message, data=data)


class Forbidden(ApiException):
    status = 403

    def __init__(self, message: str = "Access Denied", data: dict = None):
        super().__init__(message, data=data)


class NotFound(ApiException):
    status = 404

    def __init__(self, message: str = "Not found", data: dict = None):
        super().__init__(message, data=data)


class Conflict(ApiException):
    status = 409

    def __init__(self, message: str = "Conflict", data: dict = None):
        super().__init__(message, data=data)


class ValidationError(ApiException):
    status = 422

    def __init__(self, errors: dict, message: str = "Validation error"):
        super().__init__(message, data={"errors": errors})
        self.errors = errors


class RateLimited(ApiException):
    status = 429

    def __init__(self, message: str = "Too many requests", retry_after: int = None, data: dict = None):
        payload = dict(data or {})
        if retry_after is not None:
            payload["retry_after_seconds"] = retry_after
        super().__init__(message, data=payload)
        self.retry_after = retry_after


class InternalError(ApiException):
    status = 500

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)


def register_error_handlers(app):
    @app.errorhandler(ApiException)
    def _api_exception(exc: ApiException):
        if exc.status >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
            if not app.debug:
                return jsonify(success=False, message="Internal Server Error"), exc.status
        resp = jsonify(exc.to_dict())
        if isinstance(exc, RateLimited) and exc.retry_after:
            resp.headers["Retry-After"] = str(exc.retry_after)
        return resp, exc.status

    @app.errorhandler(HTTPException)
    def _http_exception(exc: HTTPException):
        return jsonify(success=False, message=exc.description or exc.name), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        logger.exception("Unhandled error")
        message = str(exc) if app.debug else "Internal Server Error"
        return jsonify(success=False, message=message), 500
