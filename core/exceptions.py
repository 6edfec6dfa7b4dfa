"""
Domain error taxonomy.

Services raise these; the HTTP boundary (core.middleware.error_handling)
translates them into the JSON error envelope using ``status_code`` and
``code``.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for every error a service is allowed to raise."""

    code: str = "DOMAIN_ERROR"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Denied(DomainError):
    """Raised by the authorization guard."""

    code = "DENIED"
    status_code = 403
    default_message = "Access denied"


class Unauthenticated(Denied):
    """No authenticated actor."""

    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(Denied):
    """Authenticated, but wrong role or not the owner."""

    code = "FORBIDDEN"
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(DomainError):
    """Record is missing, or exists but is concealed from the actor."""

    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class ValidationError(DomainError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid input"


class Conflict(DomainError):
    """Uniqueness violation (duplicate application, taken email)."""

    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists"


class InvalidTransition(DomainError):
    """Requested state change is not an edge of the state machine."""

    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "Invalid status transition"


class UpstreamError(DomainError):
    """Blob store, relay or mail server failed or timed out."""

    code = "UPSTREAM_ERROR"
    status_code = 502
    default_message = "An external service failed, please try again"


class Expired(DomainError):
    code = "EXPIRED"
    status_code = 410
    default_message = "Code has expired"


class InvalidCode(DomainError):
    code = "INVALID_CODE"
    status_code = 400
    default_message = "Invalid verification code"
