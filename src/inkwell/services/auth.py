"""Authentication service.

Registration, login, refresh-token rotation, logout and the password reset
flow. Access tokens are short-lived HS256 JWTs bound to a login session
(``sid``); refresh tokens are opaque random strings stored on the session.

Usage:
    service = AuthService(db)
    auth = await service.login(LoginRequest(email=..., password=...), user_agent)
"""

from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.config import settings
from inkwell.core.exceptions import ConflictError, UnauthorizedError
from inkwell.core.logging import get_logger
from inkwell.core.security import create_access_token, decode_access_token, generate_token, verify_password
from inkwell.models.base import utcnow
from inkwell.models.session import Session
from inkwell.models.user import User, UserRole
from inkwell.repositories.base import EntityId
from inkwell.schemas.common import MessageResponse, iso_now
from inkwell.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from inkwell.services.session import SessionService
from inkwell.services.user import UserService

INVALID_CREDENTIALS = "Invalid credentials"
RESET_REQUESTED = "If the email exists, a password reset link has been sent"


class AuthService:
    """Service for authentication-related business logic.

    Attributes:
        session: Database session
        users: UserService instance
        sessions: SessionService instance
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserService(session)
        self.sessions = SessionService(session)
        self._logger = get_logger(f"{__name__}.AuthService")

    def _issue(self, user: User, login_session: Session) -> AuthResponse:
        access_token = create_access_token(
            subject=str(user.id),
            email=user.email,
            session_id=str(login_session.id),
        )
        return AuthResponse(
            access_token=access_token,
            refresh_token=login_session.refresh_token,
            expires_in=settings.access_token_expires_minutes * 60,
            user=UserResponse.model_validate(user),
        )

    async def register(self, data: RegisterRequest, user_agent: Optional[str] = None) -> AuthResponse:
        """Create an account and log it in.

        Raises:
            ConflictError: If the email or phone number is already registered
        """
        if await self.users.find_by_email(data.email):
            raise ConflictError("User with this email already exists")
        if await self.users.find_by_phone_number(data.phone_number):
            raise ConflictError("User with this phone number already exists")

        user = await self.users.create(data.model_copy(update={"role": UserRole.USER}))
        login_session = await self.sessions.create_session(user.id, user_agent)
        self._logger.info("User registered", user_id=str(user.id))
        return self._issue(user, login_session)

    async def login(self, data: LoginRequest, user_agent: Optional[str] = None) -> AuthResponse:
        """Verify credentials and open a session.

        Raises:
            UnauthorizedError: On unknown email, wrong password or inactive account
        """
        user = await self.users.find_by_email(data.email)
        if user is None or not verify_password(data.password, user.password):
            self._logger.warning("Login failed", email=data.email)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not user.is_active:
            raise UnauthorizedError("Account is deactivated")

        await self.users.update_last_login(user.id)
        login_session = await self.sessions.create_session(user.id, user_agent)
        self._logger.info("User logged in", user_id=str(user.id), session_id=str(login_session.id))
        return self._issue(user, login_session)

    async def refresh(self, refresh_token: str, user_agent: Optional[str] = None) -> AuthResponse:
        """Rotate the refresh token: the old session is revoked, a new one issued.

        Raises:
            UnauthorizedError: If the token is invalid or expired, or the user is gone
        """
        current = await self.sessions.validate_refresh_token(refresh_token)
        user = await self.users.repo.find_one_by_id(current.user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found")

        await self.sessions.revoke_session(refresh_token)
        login_session = await self.sessions.create_session(user.id, user_agent)
        return self._issue(user, login_session)

    async def logout(self, refresh_token: str) -> None:
        await self.sessions.revoke_session(refresh_token)

    async def validate_user(self, email: str, password: str) -> Optional[UserResponse]:
        """Return the public user for valid credentials, else None."""
        user = await self.users.find_by_email(email)
        if user is not None and verify_password(password, user.password):
            return UserResponse.model_validate(user)
        return None

    async def authenticate(self, access_token: str) -> User:
        """Resolve an access token to its active user.

        Raises:
            UnauthorizedError: If the token is invalid, its session was
                revoked, or the user no longer exists
        """
        try:
            payload: dict[str, Any] = decode_access_token(access_token)
        except ValueError as e:
            raise UnauthorizedError(str(e)) from e
        await self.sessions.assert_active_session(payload["sid"])
        user = await self.users.repo.find_one_by_id(payload["sub"])
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found")
        return user

    async def change_password(self, user_id: EntityId, data: ChangePasswordRequest) -> MessageResponse:
        await self.users.change_password(user_id, data.current_password, data.new_password)
        return MessageResponse(message="Password changed successfully", timestamp=iso_now())

    async def forgot_password(self, data: ForgotPasswordRequest) -> ForgotPasswordResponse:
        """Store a reset token for the account, if there is one.

        The same message is returned whether or not the email is known.
        """
        user = await self.users.find_by_email(data.email)
        if user is None:
            return ForgotPasswordResponse(message=RESET_REQUESTED)

        token = generate_token(32)
        expires_at = utcnow() + timedelta(minutes=settings.password_reset_expires_minutes)
        await self.users.store_password_reset_token(user.id, token, expires_at)
        reset_url = f"{settings.password_reset_url}?token={token}"
        self._logger.info("Password reset requested", user_id=str(user.id))
        return ForgotPasswordResponse(message=RESET_REQUESTED, reset_url=reset_url)

    async def reset_password(self, data: ResetPasswordRequest) -> MessageResponse:
        """Set a new password from a reset token and revoke every session.

        Raises:
            UnauthorizedError: If the token is unknown or expired
        """
        user = await self.users.find_by_password_reset_token(data.token)
        if user is None:
            raise UnauthorizedError("Invalid or expired reset token")
        if user.password_reset_expires is not None and user.password_reset_expires < utcnow():
            raise UnauthorizedError("Reset token has expired")

        await self.users.set_password(user.id, data.new_password)
        await self.sessions.revoke_all_user_sessions(user.id)
        return MessageResponse(message="Password changed successfully", timestamp=iso_now())
