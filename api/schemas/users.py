"""User and authentication Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from api.schemas.common import ORMModel
from database.models.users import Role

# bcrypt only reads the first 72 bytes; newer releases refuse anything longer
BCRYPT_MAX_BYTES = 72


def check_password_bytes(password: str) -> str:
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return password


class UserBase(BaseModel):
    username: str = Field(min_length=3, max_length=50, description="Unique username")
    email: EmailStr

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: str) -> str:
        """Strip whitespace from the username."""
        if isinstance(v, str):
            return v.strip()
        return v


class RegisterRequest(UserBase):
    """Schema for registering a new account."""

    password: str = Field(min_length=6, max_length=128, description="Plain text password")

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_bytes(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own account."""

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=500)


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_bytes(v)


class RoleUpdate(BaseModel):
    """Admin-only role change; values outside the enum fail validation."""

    role: Role


class UserResponse(ORMModel):
    """Public view of a user. Never carries the password hash."""

    id: int
    username: str
    email: str
    role: Role
    avatar: Optional[str] = None
    created_at: datetime


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
