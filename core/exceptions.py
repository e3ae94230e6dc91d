"""
Domain exceptions shared by middleware, dependencies and route handlers.

Each exception carries the HTTP status and a stable error code; the
handlers in ``core.middleware.error_handling`` turn them into JSON.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class AuthenticationError(ServiceError):
    """No token, bad token, revoked token or unknown user."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class AuthorizationError(ServiceError):
    """Raised when user doesn't have required permissions."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Permission denied"


class InsufficientPermissions(AuthorizationError):
    """Raised when user lacks the role required by a route."""

    code = "INSUFFICIENT_PERMISSIONS"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid input provided"


class DuplicateRecordError(ValidationFailed):
    code = "DUPLICATE_RECORD"
    default_message = "Record already exists"
