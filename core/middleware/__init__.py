"""
Core middleware package.

This package provides the request pipeline:
- Error handling with sensitive data sanitization
- Structured logging with credential masking
- Redis-based rate limiting of credential and API endpoints
- Authentication (identity resolution from the token cookie / bearer header)
- Authorization (role gate and the centralized ownership gate)
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.rate_limiting import (
    RateLimitMiddleware,
    RateLimitRule,
    RateLimitStrategy,
    RateLimitWindow,
    SlidingWindowRateLimiter,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    Identity,
    get_current_user,
)

from core.middleware.authorization import (
    Action,
    AuthorizationDecision,
    ResourceDescriptor,
    ResourceKind,
    authorize,
    ensure_authorized,
    require_roles,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Rate limiting
    "RateLimitMiddleware",
    "RateLimitRule",
    "RateLimitStrategy",
    "RateLimitWindow",
    "SlidingWindowRateLimiter",
    # Authentication
    "AuthenticationMiddleware",
    "Identity",
    "get_current_user",
    # Authorization
    "Action",
    "AuthorizationDecision",
    "ResourceDescriptor",
    "ResourceKind",
    "authorize",
    "ensure_authorized",
    "require_roles",
]
