"""
Security primitives: password hashing, token issuing/verification and the
auth cookie.

Tokens are HS256 JWTs binding a user id, with a fixed lifetime (30 days by
default). Each token carries a ``jti`` so logout can revoke it server-side.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, TypedDict

import bcrypt
import jwt
from fastapi import Request, Response

from core.config import Settings

DEFAULT_TOKEN_LIFETIME = timedelta(days=30)


class JWTPayload(TypedDict):
    """Claims carried by an access token."""
    id: int
    jti: str
    iat: int
    exp: int


# ==================== Passwords ==================== #

def hash_password(password: str, rounds: int = 10) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        bcrypt hash (``$2b$`` format)
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# ==================== Tokens ==================== #

def create_access_token(
    user_id: int,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a signed token for a user.

    Args:
        user_id: Identity bound into the token
        secret_key: Signing secret
        algorithm: JWT signing algorithm
        expires_delta: Token lifetime (default 30 days)
        now: Issue time, for tests

    Returns:
        Encoded JWT
    """
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    payload = {
        "id": user_id,
        "jti": uuid.uuid4().hex,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def verify_jwt_token(token: str, secret_key: str, algorithm: str = "HS256") -> JWTPayload:
    """
    Verify and decode a token.

    Raises:
        jwt.ExpiredSignatureError: token is past its ``exp``
        jwt.InvalidTokenError: bad signature, malformed, or missing claims
    """
    payload = jwt.decode(
        token,
        secret_key,
        algorithms=[algorithm],
        options={"require": ["exp", "iat", "id", "jti"]},
    )
    if not isinstance(payload.get("id"), int):
        raise jwt.InvalidTokenError("Token has no valid id claim")
    return payload


def create_token_for_user(user_id: int, settings: Settings) -> str:
    """Issue a token using the configured secret and lifetime."""
    return create_access_token(
        user_id=user_id,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(days=settings.token_expire_days),
    )


def token_expiry(payload: JWTPayload) -> datetime:
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)


# ==================== Transport ==================== #

def extract_token(request: Request, cookie_name: str = "token") -> Optional[str]:
    """
    Extract the token from the request.

    The auth cookie is checked first, then ``Authorization: Bearer``; the
    first one present wins.
    """
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None  # Remove "Bearer " prefix

    return None


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.token_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    """Overwrite the auth cookie with an already-expired empty value."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value="",
        max_age=0,
        expires=datetime(1970, 1, 1, tzinfo=timezone.utc),
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
