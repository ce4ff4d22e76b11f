"""
Error handler middleware and custom exceptions.

Provides consistent error responses and the base exception classes that
the booking engine's domain errors build on.
"""
import logging
from typing import Optional, Dict, Any
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from slotbook.lib.logging import get_logger

logger = get_logger(__name__)

HTTP_422 = 422


# Custom exception classes
class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    """Unauthenticated access exception."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details or {},
        )


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details or {},
        )


class ConflictException(AppException):
    """Resource conflict exception."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=HTTP_422,
            details={"errors": errors or {}},
        )


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        "path": request.url.path,
        "method": request.method,
    }


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handler for custom application exceptions.

    Returns consistent error response with correlation ID.
    """
    context = _request_context(request)

    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"Application error: {exc.message}",
        extra={"extra_fields": {
            **context,
            "status_code": exc.status_code,
            "error_type": type(exc).__name__,
            "details": exc.details,
        }},
    )

    response_content = {
        "error": exc.message,
        "correlation_id": context["correlation_id"],
    }
    if exc.details:
        response_content["details"] = exc.details

    return JSONResponse(
        status_code=exc.status_code,
        content=response_content,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handler for Pydantic validation errors.

    Formats validation errors in a consistent way.
    """
    context = _request_context(request)

    errors = [
        {
            "loc": list(error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        extra={"extra_fields": {**context, "errors": errors}},
    )

    return JSONResponse(
        status_code=HTTP_422,
        content={
            "error": "Validation error",
            "correlation_id": context["correlation_id"],
            "details": {"errors": errors},
        },
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handler for Starlette HTTP exceptions.

    Provides consistent format for HTTP errors.
    """
    context = _request_context(request)

    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra={"extra_fields": {**context, "status_code": exc.status_code}},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "correlation_id": context["correlation_id"],
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler for unhandled exceptions.

    Logs full stack trace and returns generic error message.
    """
    context = _request_context(request)

    logger.error(
        f"Unhandled exception: {exc}",
        extra={"extra_fields": context},
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "correlation_id": context["correlation_id"],
        },
    )
