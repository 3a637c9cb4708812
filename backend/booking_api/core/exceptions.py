"""
Domain error taxonomy and the FastAPI handlers that render it.

Services raise these errors before any state mutation; the handlers turn them
into the response envelope `{"success": false, "kind": ..., "message": ...}`.
Unexpected exceptions become `internal` with a generic message; the traceback
is only logged.
"""

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_api.core.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"
    INVALID_STATE = "invalid_state"
    PAYMENT_FAILED = "payment_failed"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


class BookingAPIError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)


class NotFoundError(BookingAPIError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(BookingAPIError):
    kind = ErrorKind.INVALID_INPUT
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BookingAPIError):
    kind = ErrorKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT


class InsufficientCapacityError(BookingAPIError):
    kind = ErrorKind.INSUFFICIENT_CAPACITY
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, available: int, message: Optional[str] = None):
        self.available = available
        super().__init__(message or f"Only {available} seats available", available=available)


class InvalidStateError(BookingAPIError):
    kind = ErrorKind.INVALID_STATE
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentFailedError(BookingAPIError):
    kind = ErrorKind.PAYMENT_FAILED
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class UnauthorizedError(BookingAPIError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(BookingAPIError):
    kind = ErrorKind.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(BookingAPIError):
    kind = ErrorKind.INTERNAL
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(kind: ErrorKind, message: str, **extra: Any) -> dict:
    body = {"success": False, "kind": kind.value, "message": message}
    body.update(extra)
    return body


async def booking_api_error_handler(request: Request, exc: BookingAPIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", kind=exc.kind.value, error=exc.message)
        message = "Internal server error"
    else:
        logger.info("domain_error", kind=exc.kind.value, error=exc.message)
        message = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, message, **exc.extra),
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [str(err.get("msg", "")) for err in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(ErrorKind.INVALID_INPUT, "Validation error", errors=errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = {
        status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
        status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    }.get(exc.status_code, ErrorKind.INVALID_INPUT)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorKind.INTERNAL, "Internal server error"),
    )


EXCEPTION_HANDLERS = {
    BookingAPIError: booking_api_error_handler,
    RequestValidationError: validation_error_handler,
    StarletteHTTPException: http_exception_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
