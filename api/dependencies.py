"""FastAPI dependencies for dependency injection."""

from typing import AsyncGenerator

from fastapi import Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.middleware.authentication import Identity, get_current_user
from core.middleware.authorization import require_roles
from database.models.users import Role


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One session per request, from the factory built by the application."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def require_authenticated_user(request: Request) -> Identity:
    """
    Identity resolved by the authentication middleware.

    Never re-fetches the user; raises 401 if the middleware did not run.
    """
    return get_current_user(request)


require_admin_user = require_roles(Role.ADMIN)

def get_pagination_params(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> dict:
    """
    Get pagination parameters.

    Returns:
        Dictionary with offset and limit
    """
    return {"offset": offset, "limit": limit}

