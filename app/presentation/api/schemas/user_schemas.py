"""Pydantic schemas for user API endpoints."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from app.domain.models.user import User
from app.services.password_hasher import MAX_PASSWORD_BYTES


def _check_password_length(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


NewPassword = Annotated[str, Field(min_length=1), AfterValidator(_check_password_length)]


class UserRegisterRequest(BaseModel):
    """Request schema for user registration."""

    name: str = Field(min_length=1)
    email: EmailStr
    password: NewPassword


class UserLoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr
    password: str


class UserChangePasswordRequest(BaseModel):
    """Request schema for changing a password."""

    previous_password: str
    new_password: NewPassword


class UserVerifyEmailRequest(BaseModel):
    """Request schema for email verification."""

    token: str


class UserResendVerificationRequest(BaseModel):
    """Request schema to resend verification email."""

    email: EmailStr


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: str
    email: str
    name: str
    is_verified: bool
    verified_at: Optional[datetime]
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            is_verified=user.is_verified,
            verified_at=user.verified_at,
            created_at=user.created_at,
        )
