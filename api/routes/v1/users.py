"""
User management endpoints.

Provides REST API for the caller's own profile and admin user management.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_app_settings,
    get_db,
    get_pagination_params,
    require_admin_user,
    require_authenticated_user,
)
from api.schemas.common import serialize, serialize_many, success_response
from api.schemas.users import PasswordChange, RoleUpdate, UserResponse, UserUpdate
from api.services import users as user_service
from core.config import Settings
from core.exceptions import ValidationFailed
from core.middleware.authentication import Identity
from core.security import clear_auth_cookie
from database.models.users import Role

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    summary="Get Current User",
    description="Get the current authenticated user's profile.",
)
async def get_current_user_profile(
    current_user: Identity = Depends(require_authenticated_user),
):
    return success_response(serialize(UserResponse, current_user))


@router.put(
    "/me",
    summary="Update Current User",
    description="Update username, email or avatar of the current user.",
)
async def update_current_user(
    payload: UserUpdate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_profile(
        db, current_user.id, payload.model_dump(exclude_unset=True)
    )
    return success_response(serialize(UserResponse, user), message="Profile updated successfully")


@router.put(
    "/me/password",
    summary="Change Password",
    description="Change the current user's password. The current password must match.",
)
async def change_password(
    payload: PasswordChange,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    await user_service.change_password(
        db,
        current_user.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    return success_response(message="Password updated successfully")


@router.delete(
    "/me",
    summary="Delete Account",
    description="Delete the current user's account and everything it owns.",
)
async def delete_current_user(
    response: Response,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    await user_service.delete_user(db, current_user.id)
    clear_auth_cookie(response, settings)
    return success_response(message="Account deleted successfully")


@router.get(
    "",
    summary="List Users",
    description="List all users. Admin only.",
)
async def list_users(
    role: Optional[Role] = Query(None, description="Filter by role"),
    search: Optional[str] = Query(None, max_length=100, description="Search by username or email"),
    pagination: dict = Depends(get_pagination_params),
    current_user: Identity = Depends(require_admin_user),
    db: AsyncSession = Depends(get_db),
):
    users, total = await user_service.list_users(
        db,
        role=role,
        search_query=search,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )
    return success_response(serialize_many(UserResponse, users), count=total)


@router.get(
    "/{user_id}",
    summary="Get User",
    description="Get a specific user's profile. Admin only.",
)
async def get_user(
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_admin_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return success_response(serialize(UserResponse, user))


@router.put(
    "/{user_id}/role",
    summary="Update User Role",
    description="Change a user's role. Admin only.",
)
async def update_user_role(
    payload: RoleUpdate,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_admin_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_role(db, user_id, payload.role, updated_by=current_user.id)
    return success_response(serialize(UserResponse, user), message="User role updated successfully")


@router.delete(
    "/{user_id}",
    summary="Delete User",
    description="Delete a user. Admin only; admins cannot delete themselves here.",
)
async def delete_user(
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_admin_user),
    db: AsyncSession = Depends(get_db),
):
    if user_id == current_user.id:
        raise ValidationFailed("You cannot delete your own account from here")

    await user_service.delete_user(db, user_id)
    return success_response(message="User deleted successfully")
