"""
Core middleware package.

This package provides:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Bearer-token authentication resolving requests to an Actor
- The authorization guard (roles, permissions, ownership)
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
)

from core.middleware.authentication import (
    Actor,
    extract_token,
    resolve_actor,
)

from core.middleware.authorization import (
    Permission,
    Requirement,
    Authenticated,
    HasRole,
    HasPermission,
    Owns,
    authorize,
    get_role_permissions,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    "get_logger",
    # Authentication
    "Actor",
    "extract_token",
    "resolve_actor",
    # Authorization
    "Permission",
    "Requirement",
    "Authenticated",
    "HasRole",
    "HasPermission",
    "Owns",
    "authorize",
    "get_role_permissions",
]
