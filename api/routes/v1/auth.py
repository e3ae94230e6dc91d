"""
Authentication endpoints.

Provides:
- Registration (role ``user``, token issued immediately)
- Email/password login
- Logout (clears the cookie and revokes the presented token)

All three are public; the authentication middleware skips them.
"""

import logging

import jwt
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_app_settings, get_db
from api.schemas.common import success_response
from api.schemas.users import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from api.services import users as user_service
from core.config import Settings
from core.security import (
    clear_auth_cookie,
    create_token_for_user,
    extract_token,
    set_auth_cookie,
    verify_jwt_token,
)
from database.models.users import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _issue(user: User, response: Response, settings: Settings) -> dict:
    token = create_token_for_user(user.id, settings)
    set_auth_cookie(response, token, settings)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=token,
    ).model_dump(mode="json")


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account with the default role and sign in.",
)
async def register(
    payload: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = await user_service.create_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    return success_response(_issue(user, response, settings), message="User registered successfully")


@router.post(
    "/login",
    summary="Login",
    description="Exchange email and password for a token (also set as an httpOnly cookie).",
)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = await user_service.authenticate(db, payload.email, payload.password)
    return success_response(_issue(user, response, settings), message="Login successful")


@router.post(
    "/logout",
    summary="Logout",
    description="Clear the auth cookie and revoke the presented token.",
)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Logout is idempotent: a missing or already-invalid token still succeeds.
    """
    token = extract_token(request, settings.auth_cookie_name)

    if token and settings.token_revocation_enabled:
        try:
            payload = verify_jwt_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        except jwt.InvalidTokenError:
            # nothing to revoke; the token is already unusable
            payload = None
        if payload:
            await user_service.revoke_token(db, payload)

    clear_auth_cookie(response, settings)
    return success_response(message="Logged out successfully")
