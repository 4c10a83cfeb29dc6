"""User account model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Enum as SQLEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.models.base import Base, Entity, UTCDateTime, generate_repr


class UserRole(str, Enum):
    """Account role."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(Base, Entity):
    """A registered account.

    Attributes:
        first_name: Given name
        last_name: Family name
        email: Login email, stored lower-cased, unique
        phone_number: Contact number, unique
        password: bcrypt hash of the password
        role: USER or ADMIN
        avatar: Public URL of the avatar image
        address: Postal address
        is_active: False once the account is deactivated
        is_email_verified: Email confirmation flag
        email_verification_token: Pending email confirmation token
        password_reset_token: Pending password reset token
        password_reset_expires: Expiry of the password reset token
        last_login_at: Timestamp of the last successful login
    """

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.USER,
    )
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verification_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_reset_token: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    password_reset_expires: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __repr__ = generate_repr("id", "email", "role")
