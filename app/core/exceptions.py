"""
Custom exceptions for the Account Service application.
Provides structured error handling and the translation of errors into the
uniform error envelope.
"""

from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger, log_error

logger = get_logger(__name__)


class AccountServiceException(Exception):
    """Base exception for Account Service application."""

    def __init__(
        self,
        message: str,
        error_code: str = "ACCOUNT_SERVICE_ERROR",
        errors: Optional[List[Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.errors = errors or []
        super().__init__(self.message)


class BadRequestError(AccountServiceException):
    """Raised when input is missing or invalid."""

    def __init__(self, message: str = "Bad request", errors: Optional[List[Any]] = None):
        super().__init__(message, "BAD_REQUEST", errors)


class UnauthorizedError(AccountServiceException):
    """Raised on bad credentials or an invalid, stale or expired token."""

    def __init__(self, message: str = "Unauthorized request", errors: Optional[List[Any]] = None):
        super().__init__(message, "UNAUTHORIZED", errors)


class NotFoundError(AccountServiceException):
    """Raised when an account lookup misses."""

    def __init__(self, message: str = "Resource not found", errors: Optional[List[Any]] = None):
        super().__init__(message, "NOT_FOUND", errors)


class ConflictError(AccountServiceException):
    """Raised when a username or email is already taken."""

    def __init__(self, message: str = "Resource already exists", errors: Optional[List[Any]] = None):
        super().__init__(message, "CONFLICT", errors)


class InternalError(AccountServiceException):
    """Raised on unexpected persistence or upload failures."""

    def __init__(self, message: str = "Internal server error", errors: Optional[List[Any]] = None):
        super().__init__(message, "INTERNAL_ERROR", errors)


def get_exception_status_code(exc: AccountServiceException) -> int:
    """
    Get the appropriate HTTP status code for an AccountServiceException.

    Args:
        exc: AccountServiceException instance

    Returns:
        int: HTTP status code
    """
    status_mapping = {
        "BAD_REQUEST": status.HTTP_400_BAD_REQUEST,
        "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
        "NOT_FOUND": status.HTTP_404_NOT_FOUND,
        "CONFLICT": status.HTTP_409_CONFLICT,
        "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    return status_mapping.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def build_error_envelope(
    status_code: int, message: str, errors: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """Build the error envelope returned for every failed request."""
    return {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": errors or [],
    }


def async_handler(func: Callable) -> Callable:
    """
    Wrap a route handler so every failure reaches the translation layer.

    Taxonomy errors and HTTP exceptions pass through unchanged; anything
    else is logged and re-raised as InternalError.

    Usage:
        @router.post("/login")
        @async_handler
        async def login(...):
            ...
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (AccountServiceException, StarletteHTTPException):
            raise
        except Exception as e:
            log_error(e, {"handler": func.__name__})
            raise InternalError() from e

    return wrapper


async def account_service_exception_handler(
    request: Request, exc: AccountServiceException
) -> JSONResponse:
    """Translate a taxonomy error into the error envelope."""
    status_code = get_exception_status_code(exc)
    if status_code >= 500:
        logger.error(
            "Request failed",
            method=request.method,
            path=request.url.path,
            error_code=exc.error_code,
            message=exc.message,
        )
    else:
        logger.info(
            "Request rejected",
            method=request.method,
            path=request.url.path,
            error_code=exc.error_code,
            message=exc.message,
        )
    return JSONResponse(
        status_code=status_code,
        content=build_error_envelope(status_code, exc.message, exc.errors),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Translate request validation failures into a BadRequest envelope."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=build_error_envelope(
            status.HTTP_400_BAD_REQUEST, "Invalid request", errors
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Translate framework HTTP exceptions (404 routes, 405 methods) into the envelope."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_envelope(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything that escaped the route wrapper."""
    log_error(exc, {"method": request.method, "path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the translation layer on the application."""
    app.add_exception_handler(AccountServiceException, account_service_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
