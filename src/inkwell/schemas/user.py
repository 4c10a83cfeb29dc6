"""User and authentication schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from inkwell.models.user import UserRole
from inkwell.schemas.common import BaseSchema, PartialUpdate


class UserCreate(BaseSchema):
    """Schema for creating a user (registration and admin creation)."""

    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=100, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone_number: str = Field(min_length=5, max_length=20)
    address: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)
    avatar: Optional[str] = Field(default=None, max_length=500)
    role: Optional[UserRole] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserUpdate(PartialUpdate):
    """Profile fields a user may change. Unset fields are left alone."""

    clearable_fields = frozenset({"avatar"})

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone_number: Optional[str] = Field(default=None, min_length=5, max_length=20)
    address: Optional[str] = None
    avatar: Optional[str] = Field(default=None, max_length=500)


class UserResponse(BaseSchema):
    """Public view of a user; never carries the password hash or tokens."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    role: UserRole
    avatar: Optional[str] = None
    address: str
    is_active: bool
    is_email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuthorSummary(BaseSchema):
    """Expanded author on posts and comments."""

    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None


class LoginRequest(BaseSchema):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RegisterRequest(UserCreate):
    """Self-registration; any requested role is ignored and USER is used."""


class ChangePasswordRequest(BaseSchema):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class ForgotPasswordRequest(BaseSchema):
    email: str


class ResetPasswordRequest(BaseSchema):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class AuthResponse(BaseSchema):
    """Issued on register, login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ForgotPasswordResponse(BaseSchema):
    message: str
    reset_url: Optional[str] = None
