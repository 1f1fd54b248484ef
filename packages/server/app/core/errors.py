"""
Service error taxonomy and the handlers that turn errors into the
``{success, message}`` envelope.

Services raise these instead of ``HTTPException`` so that they stay usable
outside a request; ``register_exception_handlers`` maps them at the edge.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

log = structlog.get_logger()


class ServiceError(Exception):
    """Base class for expected, client-reportable failures."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = "Unauthorized. Please login first"


class AuthorizationError(ServiceError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """Uniqueness violation."""

    status_code = 409
    default_message = "Resource already exists"


class InvalidStateError(ConflictError):
    """Status-transition violation (e.g. revoking an accepted invite)."""

    status_code = 400
    default_message = "Invalid state transition"


class DependencyError(ServiceError):
    """The store or the credential issuer failed."""

    status_code = 500
    default_message = "Internal server error"


class NotificationError(ServiceError):
    """Email delivery failed. Never fails the surrounding operation."""

    status_code = 500
    default_message = "Notification could not be delivered"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "invalid value")
    return f"Invalid {location}: {detail}" if location else f"Invalid request: {detail}"


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers so every response keeps the envelope shape."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            log.error(
                "request.failed",
                path=request.url.path,
                error=type(exc).__name__,
                detail=exc.message,
            )
            return error_response(exc.status_code, "Internal server error")
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, _describe_validation_error(exc))

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        log.exception("request.unhandled_error", path=request.url.path)
        return error_response(500, "Internal server error")
