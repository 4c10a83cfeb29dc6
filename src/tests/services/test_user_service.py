"""Test UserService business rules."""

import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from factories import DEFAULT_PASSWORD, create_user
from inkwell.core.exceptions import BadRequestError, ConflictError, NotFoundError
from inkwell.core.security import verify_password
from inkwell.models.user import UserRole
from inkwell.repositories.pagination import PaginatedResult, PaginationQuery
from inkwell.schemas.user import UserCreate, UserUpdate
from inkwell.services.user import UserService


@pytest.fixture
def service(db_session: AsyncSession) -> UserService:
    return UserService(db_session)


def _user_create(**overrides) -> UserCreate:
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "Ada@Example.com",
        "phone_number": "+15550100",
        "address": "12 Analytical Way",
        "password": "s3cret-pass",
    }
    data.update(overrides)
    return UserCreate(**data)


class TestCreateUser:
    """Test account creation."""

    async def test_create_hashes_password_and_lowercases_email(self, service: UserService) -> None:
        user = await service.create(_user_create())

        assert user.email == "ada@example.com"
        assert user.password != "s3cret-pass"
        assert verify_password("s3cret-pass", user.password)
        assert user.role == UserRole.USER

    async def test_create_keeps_requested_role(self, service: UserService) -> None:
        user = await service.create(_user_create(role=UserRole.ADMIN))

        assert user.role == UserRole.ADMIN

    async def test_duplicate_email_conflicts(self, service: UserService) -> None:
        await service.create(_user_create())

        with pytest.raises(ConflictError, match="email already exists"):
            await service.create(_user_create(phone_number="+15550101"))

    def test_short_password_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            _user_create(password="short")


class TestReadUsers:
    """Test listings and lookups."""

    async def test_list_is_always_paginated(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        await create_user(db_session)
        await create_user(db_session, is_active=False)

        page = await service.list()

        assert isinstance(page, PaginatedResult)
        assert page.pagination.total == 1

    async def test_list_searches_names(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        await create_user(db_session, first_name="Grace")
        await create_user(db_session, first_name="Linus")

        page = await service.list(PaginationQuery(search_key="grac"))

        assert [user.first_name for user in page.data] == ["Grace"]

    async def test_list_simple(self, service: UserService, db_session: AsyncSession) -> None:
        await create_user(db_session)
        await create_user(db_session)

        assert len(await service.list_simple()) == 2

    async def test_get_by_id_hides_inactive(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session, is_active=False)

        with pytest.raises(NotFoundError, match="User not found"):
            await service.get_by_id(user.id)

    async def test_get_by_id_missing(self, service: UserService) -> None:
        with pytest.raises(NotFoundError):
            await service.get_by_id(uuid.uuid4())

    async def test_to_response_hides_secrets(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session)

        dumped = service.to_response(user).model_dump()

        assert "password" not in dumped
        assert "password_reset_token" not in dumped
        assert dumped["email"] == user.email


class TestUpdateUser:
    """Test updates and password changes."""

    async def test_update(self, service: UserService, db_session: AsyncSession) -> None:
        user = await create_user(db_session)

        updated = await service.update(user.id, UserUpdate(first_name="Augusta"))

        assert updated.first_name == "Augusta"

    @pytest.mark.parametrize("field", ["firstName", "lastName", "phoneNumber", "address"])
    def test_null_for_required_field_is_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match=f"cannot be null: {field}"):
            UserUpdate.model_validate({field: None})

    async def test_avatar_can_be_cleared(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session, avatar="avatars/old.jpg")

        updated = await service.update(user.id, UserUpdate.model_validate({"avatar": None}))

        assert updated.avatar is None

    async def test_update_missing(self, service: UserService) -> None:
        with pytest.raises(NotFoundError):
            await service.update(uuid.uuid4(), {"first_name": "x"})

    async def test_change_password(self, service: UserService, db_session: AsyncSession) -> None:
        user = await create_user(db_session)

        await service.change_password(user.id, DEFAULT_PASSWORD, "brand-new-pass")

        refreshed = await service.get_by_id(user.id)
        assert verify_password("brand-new-pass", refreshed.password)

    async def test_change_password_wrong_current(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session)

        with pytest.raises(BadRequestError, match="Current password is incorrect"):
            await service.change_password(user.id, "not-it", "brand-new-pass")

    async def test_set_password_clears_reset_token(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        user = await create_user(db_session, password_reset_token="abc")

        await service.set_password(user.id, "another-pass")

        refreshed = await service.get_by_id(user.id)
        assert refreshed.password_reset_token is None
        assert refreshed.password_reset_expires is None

    async def test_deactivate(self, service: UserService, db_session: AsyncSession) -> None:
        user = await create_user(db_session)

        await service.deactivate(user.id)

        with pytest.raises(NotFoundError):
            await service.get_by_id(user.id)

    async def test_reset_token_lookup_ignores_inactive(
        self, service: UserService, db_session: AsyncSession
    ) -> None:
        await create_user(db_session, password_reset_token="tok", is_active=False)

        assert await service.find_by_password_reset_token("tok") is None
