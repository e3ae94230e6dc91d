"""
User service functions for API endpoints.

Account lifecycle (register, login, profile, password, role) and token
revocation. ``password_hash`` never leaves this module.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import delete, select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    AuthenticationError,
    DuplicateRecordError,
    NotFoundError,
    ValidationFailed,
)
from core.security import JWTPayload, hash_password, token_expiry, verify_password
from database.models.users import RevokedToken, Role, User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


async def _ensure_unique(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    conditions = []
    if username:
        conditions.append(User.username == username)
    if email:
        conditions.append(User.email == email)
    if not conditions:
        return

    query = select(User.id).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)

    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise DuplicateRecordError("User with this email or username already exists")


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    bcrypt_rounds: int = 10,
) -> User:
    """
    Register a new account with the default ``user`` role.

    Raises:
        DuplicateRecordError: username or email already taken
    """
    email = email.lower()
    await _ensure_unique(db, username, email)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        role=Role.USER,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration
        await db.rollback()
        raise DuplicateRecordError("User with this email or username already exists")
    await db.refresh(user)

    logger.info(f"User registered: id={user.id}")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """
    Check credentials.

    Unknown email and wrong password fail identically.
    """
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        logger.info("Login failed: invalid credentials")
        raise AuthenticationError(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

    logger.info(f"User logged in: id={user.id}")
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def list_users(
    db: AsyncSession,
    role: Optional[Role] = None,
    search_query: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[User], int]:
    """
    List users, newest first.

    Returns:
        (users on this page, total matching)
    """
    query = select(User)

    if role:
        query = query.where(User.role == role)

    if search_query:
        pattern = f"%{search_query}%"
        query = query.where(or_(User.username.ilike(pattern), User.email.ilike(pattern)))

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def update_profile(db: AsyncSession, user_id: int, updates: Dict[str, Any]) -> User:
    """
    Update username / email / avatar of an account.

    Raises:
        ValidationFailed: nothing to update
        DuplicateRecordError: username or email taken by another account
    """
    if not updates:
        raise ValidationFailed("No updates provided")

    user = await get_user(db, user_id)

    if "email" in updates and updates["email"]:
        updates["email"] = updates["email"].lower()

    await _ensure_unique(db, updates.get("username"), updates.get("email"), exclude_id=user_id)

    for field, value in updates.items():
        if value is not None:
            setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info(f"User profile updated: id={user_id} fields={sorted(updates)}")
    return user


async def change_password(
    db: AsyncSession,
    user_id: int,
    current_password: str,
    new_password: str,
    bcrypt_rounds: int = 10,
) -> None:
    user = await get_user(db, user_id)

    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect", code="INVALID_CREDENTIALS")

    user.password_hash = hash_password(new_password, rounds=bcrypt_rounds)
    await db.commit()
    logger.info(f"Password changed: id={user_id}")


async def update_role(db: AsyncSession, user_id: int, role: Role, updated_by: int) -> User:
    user = await get_user(db, user_id)
    previous = user.role

    user.role = role
    await db.commit()
    await db.refresh(user)

    logger.warning(
        f"Role changed: user={user_id} {Role(previous).value} -> {role.value} by={updated_by}"
    )
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Delete an account; sessions, submissions and stats cascade."""
    user = await get_user(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info(f"User deleted: id={user_id}")


async def revoke_token(db: AsyncSession, payload: JWTPayload) -> None:
    """
    Add the token's ``jti`` to the revocation set. Idempotent.

    Entries whose token has already expired are dropped on the way; such
    tokens fail verification without the denylist.
    """
    existing = await db.get(RevokedToken, payload["jti"])
    if existing:
        return

    await db.execute(
        delete(RevokedToken).where(RevokedToken.expires_at < datetime.now(timezone.utc))
    )
    db.add(
        RevokedToken(
            jti=payload["jti"],
            user_id=payload["id"],
            expires_at=token_expiry(payload),
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # concurrent logout with the same token, or the user is gone
        await db.rollback()
        return
    logger.info(f"Token revoked: user={payload['id']}")
