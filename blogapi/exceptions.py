"""
Application error taxonomy and the FastAPI handlers that render it.

Every error leaves the service as the standard envelope
``{"code": <http status>, "msg": <message>}``; the envelope honours the
same JSON/raw toggle as successful responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogapi.responses import send_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class: carries the HTTP status and the client-facing message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthorizationError(AppError):
    status_code = 401
    default_message = "Authentication failed"


class MissingToken(AuthorizationError):
    default_message = "No token provided"


class RevokedToken(AuthorizationError):
    default_message = "Token has been revoked"


class InvalidOrExpiredToken(AuthorizationError):
    default_message = "Token is invalid or expired"


class SubjectNotFound(AuthorizationError):
    default_message = "User does not exist"


class PermissionDenied(AppError):
    status_code = 403
    default_message = "Not allowed"


class NotFoundError(AppError):
    status_code = 400
    default_message = "Not found"


class CollaboratorError(AppError):
    status_code = 500
    default_message = "Upstream service failed"


class StorageError(AppError):
    status_code = 500
    default_message = "Storage operation failed"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return send_response(request, exc.status_code, exc.message)


async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return send_response(request, StorageError.status_code, StorageError.default_message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc", ())
    field = str(loc[-1]) if loc else "request"
    message = f"{field}: {first.get('msg', 'invalid value')}"
    return send_response(request, ValidationError.status_code, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return send_response(request, exc.status_code, str(exc.detail))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
