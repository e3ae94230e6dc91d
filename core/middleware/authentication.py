"""
Authentication middleware for resolving the caller's identity.

This middleware:
1. Extracts the token (``token`` cookie first, then ``Authorization: Bearer``)
2. Verifies signature and expiry
3. Rejects tokens revoked by logout (when revocation is enabled)
4. Loads the user record and strips the password hash
5. Stores the resulting Identity in ``request.state.user``

Identity is resolved exactly once per request; route dependencies and the
authorization gate read it from request state and never re-fetch it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from core.exceptions import AuthenticationError
from core.security import extract_token, verify_jwt_token, JWTPayload
from database.models.users import RevokedToken, Role, User

logger = logging.getLogger(__name__)


class TokenMissingError(AuthenticationError):
    """Raised when the request carries no token at all."""
    code = "TOKEN_MISSING"
    default_message = "Access denied. No token provided."


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""
    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired. Please login again."


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""
    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token."


class TokenRevokedError(AuthenticationError):
    """Raised when the token was revoked by logout."""
    code = "TOKEN_REVOKED"
    default_message = "Session has ended. Please login again."


class UserNotFoundError(AuthenticationError):
    """Raised when the token's user no longer exists."""
    code = "USER_NOT_FOUND"
    default_message = "User account not found."


@dataclass(frozen=True)
class Identity:
    """Authenticated caller: the user record without its password hash."""

    id: int
    username: str
    email: str
    role: Role
    avatar: Optional[str]
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=Role(user.role),
            avatar=user.avatar,
            created_at=user.created_at,
        )


def public_endpoints(api_prefix: str) -> list[str]:
    """Endpoints reachable without a token."""
    return [
        "/",
        "/health",
        "/ready",
        f"{api_prefix}/auth/register",
        f"{api_prefix}/auth/login",
        f"{api_prefix}/auth/logout",
        "/docs",
        "/redoc",
        "/openapi.json",
    ]


class AuthenticationMiddleware:
    """
    ASGI middleware that resolves the identity for every protected request.

    Any failure ends the request with 401; nothing downstream runs.
    """

    def __init__(
        self,
        app: Callable,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            settings: Immutable application settings (secret, algorithm, cookie)
            session_factory: Factory for database sessions
        """
        self.app = app
        self.settings = settings
        self.session_factory = session_factory
        self.public_endpoints = set(public_endpoints(settings.api_v1_prefix))

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)

        # CORS preflight and public endpoints skip authentication
        if request.method == "OPTIONS" or self._is_public_endpoint(request.url.path):
            await self.app(scope, receive, send)
            return

        try:
            identity, payload = await self.authenticate(request)
        except AuthenticationError as e:
            logger.warning(f"Authentication failed ({e.code}) for {request.method} {request.url.path}")
            await self._send_error_response(scope, receive, send, e)
            return
        except Exception as e:
            logger.error(f"Authentication error: {str(e)}", exc_info=True)
            await self._send_error_response(
                scope,
                receive,
                send,
                AuthenticationError("An error occurred during authentication.", code="AUTHENTICATION_ERROR"),
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
            return

        state = scope.setdefault("state", {})
        state["user"] = identity
        state["token_payload"] = payload
        logger.info(f"User authenticated: id={identity.id} role={identity.role.value}")

        await self.app(scope, receive, send)

    async def authenticate(self, request: Request) -> tuple[Identity, JWTPayload]:
        """
        Resolve the identity behind the request's token.

        Raises:
            AuthenticationError: (subclass) on any failure
        """
        token = extract_token(request, self.settings.auth_cookie_name)
        if not token:
            raise TokenMissingError()

        try:
            payload = verify_jwt_token(
                token, self.settings.jwt_secret_key, self.settings.jwt_algorithm
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {str(e)}")
            raise TokenInvalidError()

        async with self.session_factory() as db:
            if self.settings.token_revocation_enabled and await self._is_revoked(db, payload["jti"]):
                raise TokenRevokedError()

            user = await db.get(User, payload["id"])
            if not user:
                raise UserNotFoundError()

            return Identity.from_user(user), payload

    async def _is_revoked(self, db: AsyncSession, jti: str) -> bool:
        result = await db.execute(select(RevokedToken.jti).where(RevokedToken.jti == jti))
        return result.scalar_one_or_none() is not None

    def _is_public_endpoint(self, path: str) -> bool:
        # Exact match
        if path in self.public_endpoints:
            return True

        # Prefix match for health checks and docs
        public_prefixes = ["/health", "/docs", "/redoc", "/openapi"]
        return any(path.startswith(prefix) for prefix in public_prefixes)

    async def _send_error_response(
        self,
        scope: dict,
        receive: Callable,
        send: Callable,
        error: AuthenticationError,
        status_code: Optional[int] = None,
    ) -> None:
        response = JSONResponse(
            status_code=status_code or error.status_code,
            content={
                "success": False,
                "message": error.message,
                "error": error.code,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        await response(scope, receive, send)


def get_current_user(request: Request) -> Identity:
    """
    Get current authenticated identity from request state.

    Raises:
        AuthenticationError: If no identity was resolved for this request
    """
    user = getattr(request.state, "user", None)
    if not user:
        raise AuthenticationError("Authentication required")
    return user

