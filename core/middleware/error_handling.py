"""
Error handling middleware with security-compliant error sanitization.
Prevents sensitive data leakage while providing useful error information.
"""

import logging
import traceback
from typing import Any, Callable, Optional
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
import re

from core.exceptions import DomainError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'code["\s:=]+\d{4,8}\b', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{16}\b'),  # Credit card
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Extract safe error details without exposing sensitive information.

    Args:
        exc: The exception to extract details from
        include_details: Whether to include detailed error information (only in dev)

    Returns:
        Dictionary with safe error details
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }

    if include_details:
        # Only include stack trace in development
        details["traceback"] = traceback.format_exc()

    return details


def error_envelope(
    code: str,
    message: str,
    path: str,
    method: str,
    details: Optional[Any] = None,
) -> dict[str, Any]:
    """Uniform error body: {"error": {"code", "message", "path", "method"}}."""
    body = {
        "error": {
            "code": code,
            "message": message,
            "path": path,
            "method": method,
        }
    }
    if details is not None:
        body["error"]["details"] = details
    return body


def log_domain_error(exc: DomainError, method: str, path: str) -> None:
    text = (
        f"{type(exc).__name__}: {method} {path} - "
        f"Status: {exc.status_code}, Message: {sanitize_error_message(exc.message)}"
    )
    if exc.status_code >= 500:
        logger.error(text)
    else:
        logger.warning(text)


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Format validation errors into a user-friendly structure.

    Args:
        exc: The validation exception

    Returns:
        List of formatted validation errors
    """
    errors = []
    for error in exc.errors():
        error_dict = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }

        # Include input value only if it's a simple type and not sensitive
        if "input" in error:
            input_value = error["input"]
            if isinstance(input_value, (str, int, float, bool)):
                input_str = str(input_value)
                if not any(pattern.search(input_str) for pattern in SENSITIVE_PATTERNS):
                    error_dict["input"] = input_value

        errors.append(error_dict)

    return errors


class ErrorHandlingMiddleware:
    """
    Outermost safety net: turns anything that escaped the exception
    handlers into the standard error envelope.
    """

    def __init__(self, app: Callable, debug: bool = False):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            debug: Whether to include detailed error information
        """
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = await self._handle_exception(exc, scope)
            await response(scope, receive, send)

    async def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        """
        Map an exception to a status code and error envelope.

        Args:
            exc: The exception to handle
            scope: ASGI scope for context

        Returns:
            JSONResponse with error details
        """
        request_path = scope.get("path", "unknown")
        request_method = scope.get("method", "unknown")

        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "INTERNAL_SERVER_ERROR"
        message = "An unexpected error occurred"
        details = None

        if isinstance(exc, DomainError):
            status_code = exc.status_code
            error_code = exc.code
            message = sanitize_error_message(exc.message)
            log_domain_error(exc, request_method, request_path)

        elif isinstance(exc, StarletteHTTPException):
            status_code = exc.status_code
            error_code = "HTTP_EXCEPTION"
            message = sanitize_error_message(exc.detail)
            logger.warning(
                f"HTTP exception: {request_method} {request_path} - "
                f"Status: {status_code}, Message: {message}"
            )

        elif isinstance(exc, RequestValidationError):
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
            error_code = "VALIDATION_ERROR"
            message = "Request validation failed"
            details = format_validation_errors(exc)
            logger.warning(
                f"Validation error: {request_method} {request_path} - Errors: {details}"
            )

        elif isinstance(exc, IntegrityError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "CONFLICT"
            message = "Database integrity constraint violated"
            logger.warning(f"Database integrity error: {request_method} {request_path}")

        elif isinstance(exc, OperationalError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            error_code = "DATABASE_ERROR"
            message = "Database service temporarily unavailable"
            logger.error(
                f"Database operational error: {request_method} {request_path}",
                exc_info=True
            )

        elif isinstance(exc, SQLAlchemyError):
            error_code = "DATABASE_ERROR"
            message = "A database error occurred"
            if self.debug:
                details = get_safe_error_details(exc, include_details=True)
            logger.error(
                f"SQLAlchemy error: {request_method} {request_path}",
                exc_info=True
            )

        else:
            if self.debug:
                details = get_safe_error_details(exc, include_details=True)
            logger.error(
                f"Unhandled exception: {request_method} {request_path} - "
                f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
                exc_info=True
            )

        error_response = error_envelope(
            error_code, message, request_path, request_method, details
        )

        # Add request ID if available
        if "headers" in scope:
            headers = dict(scope["headers"])
            request_id = headers.get(b"x-request-id")
            if request_id:
                error_response["error"]["request_id"] = request_id.decode()

        return JSONResponse(status_code=status_code, content=error_response)


def setup_error_handlers(app):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        """Handle errors raised by the service layer."""
        log_domain_error(exc, request.method, request.url.path)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(
                exc.code,
                sanitize_error_message(exc.message),
                str(request.url.path),
                request.method,
            ),
            headers=headers,
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        """Uniqueness violations that reached the boundary."""
        logger.warning(f"Database integrity error: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_envelope(
                "CONFLICT",
                "Database integrity constraint violated",
                str(request.url.path),
                request.method,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(
                "HTTP_EXCEPTION",
                sanitize_error_message(exc.detail),
                str(request.url.path),
                request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors."""
        errors = format_validation_errors(exc)
        logger.warning(
            f"Validation error: {request.method} {request.url.path} - Errors: {errors}"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_envelope(
                "VALIDATION_ERROR",
                "Request validation failed",
                str(request.url.path),
                request.method,
                errors,
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(
                "INTERNAL_SERVER_ERROR",
                "An unexpected error occurred",
                str(request.url.path),
                request.method,
            ),
        )
