"""Test AuthService flows: register, login, refresh, logout and password reset."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from factories import DEFAULT_PASSWORD, create_user
from inkwell.core.config import settings
from inkwell.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from inkwell.core.security import create_access_token, decode_access_token
from inkwell.models.base import utcnow
from inkwell.models.user import User, UserRole
from inkwell.schemas.user import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from inkwell.services.auth import RESET_REQUESTED, AuthService


@pytest.fixture
def service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
async def user(db_session: AsyncSession) -> User:
    return await create_user(db_session, email="ada@example.com", phone_number="+15550001")


def _register(**overrides) -> RegisterRequest:
    data = {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@example.com",
        "phone_number": "+15550002",
        "address": "1 Navy Yard",
        "password": "compilers-rule",
    }
    data.update(overrides)
    return RegisterRequest(**data)


class TestRegister:
    """Test self-registration."""

    async def test_register_issues_tokens(self, service: AuthService) -> None:
        auth = await service.register(_register(), user_agent="pytest")

        payload = decode_access_token(auth.access_token)
        assert payload["email"] == "grace@example.com"
        assert payload["sub"] == str(auth.user.id)
        assert auth.token_type == "bearer"
        assert auth.expires_in == settings.access_token_expires_minutes * 60
        assert auth.refresh_token

    async def test_register_ignores_requested_role(self, service: AuthService) -> None:
        auth = await service.register(_register(role=UserRole.ADMIN))

        assert auth.user.role == UserRole.USER

    async def test_duplicate_email(self, service: AuthService, user: User) -> None:
        with pytest.raises(ConflictError, match="email already exists"):
            await service.register(_register(email="ada@example.com"))

    async def test_duplicate_phone(self, service: AuthService, user: User) -> None:
        with pytest.raises(ConflictError, match="phone number already exists"):
            await service.register(_register(phone_number="+15550001"))


class TestLogin:
    """Test credential checks and session handling."""

    async def test_login(self, service: AuthService, user: User) -> None:
        auth = await service.login(LoginRequest(email="ADA@example.com", password=DEFAULT_PASSWORD))

        assert auth.user.id == user.id
        assert auth.user.last_login_at is not None

    async def test_wrong_password(self, service: AuthService, user: User) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            await service.login(LoginRequest(email="ada@example.com", password="wrong-password"))

    async def test_unknown_email(self, service: AuthService) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid credentials"):
            await service.login(LoginRequest(email="nobody@example.com", password="whatever"))

    async def test_inactive_account(self, service: AuthService, db_session: AsyncSession) -> None:
        await create_user(db_session, email="gone@example.com", is_active=False)

        with pytest.raises(UnauthorizedError, match="deactivated"):
            await service.login(LoginRequest(email="gone@example.com", password=DEFAULT_PASSWORD))

    async def test_validate_user(self, service: AuthService, user: User) -> None:
        assert (await service.validate_user("ada@example.com", DEFAULT_PASSWORD)) is not None
        assert await service.validate_user("ada@example.com", "nope") is None

    async def test_refresh_rotates_token(self, service: AuthService, user: User) -> None:
        first = await service.login(LoginRequest(email="ada@example.com", password=DEFAULT_PASSWORD))

        second = await service.refresh(first.refresh_token)

        assert second.refresh_token != first.refresh_token
        with pytest.raises(UnauthorizedError):
            await service.refresh(first.refresh_token)

    async def test_logout_revokes_access_token_session(self, service: AuthService, user: User) -> None:
        auth = await service.login(LoginRequest(email="ada@example.com", password=DEFAULT_PASSWORD))
        assert (await service.authenticate(auth.access_token)).id == user.id

        await service.logout(auth.refresh_token)

        with pytest.raises(UnauthorizedError, match="Session revoked"):
            await service.authenticate(auth.access_token)

    async def test_authenticate_rejects_garbage(self, service: AuthService) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            await service.authenticate("not-a-jwt")

    async def test_authenticate_rejects_expired(self, service: AuthService, user: User) -> None:
        token = create_access_token(
            str(user.id), user.email, "unused", expires_delta=timedelta(seconds=-5)
        )

        with pytest.raises(UnauthorizedError, match="Token has expired"):
            await service.authenticate(token)


class TestPasswords:
    """Test password change and reset."""

    async def test_change_password(self, service: AuthService, user: User) -> None:
        response = await service.change_password(
            user.id,
            ChangePasswordRequest(current_password=DEFAULT_PASSWORD, new_password="fresh-password"),
        )

        assert response.message == "Password changed successfully"
        assert await service.validate_user("ada@example.com", "fresh-password") is not None

    async def test_change_password_wrong_current(self, service: AuthService, user: User) -> None:
        with pytest.raises(BadRequestError):
            await service.change_password(
                user.id,
                ChangePasswordRequest(current_password="nope", new_password="fresh-password"),
            )

    async def test_forgot_password_unknown_email(self, service: AuthService) -> None:
        response = await service.forgot_password(ForgotPasswordRequest(email="nobody@example.com"))

        assert response.message == RESET_REQUESTED
        assert response.reset_url is None

    async def test_reset_flow_revokes_sessions(self, service: AuthService, user: User) -> None:
        auth = await service.login(LoginRequest(email="ada@example.com", password=DEFAULT_PASSWORD))
        forgot = await service.forgot_password(ForgotPasswordRequest(email="ada@example.com"))
        assert forgot.reset_url is not None
        token = forgot.reset_url.split("token=", 1)[1]

        await service.reset_password(ResetPasswordRequest(token=token, new_password="after-reset"))

        assert await service.validate_user("ada@example.com", "after-reset") is not None
        with pytest.raises(UnauthorizedError):
            await service.refresh(auth.refresh_token)
        with pytest.raises(UnauthorizedError, match="Invalid or expired reset token"):
            await service.reset_password(ResetPasswordRequest(token=token, new_password="again-pass"))

    async def test_expired_reset_token(self, service: AuthService, user: User) -> None:
        await service.users.store_password_reset_token(
            user.id, "stale-token", utcnow() - timedelta(minutes=1)
        )

        with pytest.raises(UnauthorizedError, match="Reset token has expired"):
            await service.reset_password(
                ResetPasswordRequest(token="stale-token", new_password="after-reset")
            )
