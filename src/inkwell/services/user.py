"""User service.

Business rules around accounts: unique emails, password hashing, the
active-user view of the directory, and the public response shape that never
exposes password hashes or tokens.
"""

from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.exceptions import BadRequestError, ConflictError, NotFoundError
from inkwell.core.logging import get_logger
from inkwell.core.security import hash_password, verify_password
from inkwell.models.user import User, UserRole
from inkwell.repositories.base import EntityId
from inkwell.repositories.pagination import ListOptions, PaginatedResult, PaginationQuery
from inkwell.repositories.user import UserRepository
from inkwell.schemas.user import UserCreate, UserResponse, UserUpdate

USER_SEARCH_FIELDS = ("first_name", "last_name", "email")
USER_SORT_FIELDS = ("first_name", "last_name", "email", "created_at", "updated_at")

# Module-level so the ``list`` method does not shadow the builtin
Users = list[User]
UserList = Union[Users, PaginatedResult[User]]


class UserService:
    """Service for user accounts.

    Attributes:
        session: Database session
        repo: UserRepository instance
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = UserRepository(session)
        self._logger = get_logger(f"{__name__}.UserService")

    async def create(self, data: UserCreate) -> User:
        """Create an account with a hashed password.

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.repo.find_by_email(data.email):
            raise ConflictError("User with this email already exists")

        values = data.model_dump(exclude={"password", "role"})
        values["password"] = hash_password(data.password)
        values["role"] = data.role or UserRole.USER

        user = await self.repo.create(values)
        self._logger.info("User created", user_id=str(user.id), role=user.role.value)
        return user

    async def list(
        self, pagination: Optional[PaginationQuery] = None
    ) -> UserList:
        """Active users, searchable by name and email."""
        return await self.repo.find_all(
            {"is_active": True},
            pagination=pagination or PaginationQuery(page=1),
            options=ListOptions(
                search_fields=USER_SEARCH_FIELDS,
                sort_fields=USER_SORT_FIELDS,
            ),
        )

    async def list_simple(self) -> Users:
        """Every active user, newest first, unpaginated."""
        return await self.repo.find_all(
            {"is_active": True},
            options=ListOptions(order={"created_at": "desc"}),
        )

    async def get_by_id(self, user_id: EntityId) -> User:
        """Return an active user.

        Raises:
            NotFoundError: If the user does not exist, is deleted or inactive
        """
        user = await self.repo.find_one_by_id(user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User")
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.repo.find_by_email(email)

    async def find_by_phone_number(self, phone_number: str) -> Optional[User]:
        return await self.repo.find_by_phone_number(phone_number)

    async def find_by_password_reset_token(self, token: str) -> Optional[User]:
        user = await self.repo.find_by_password_reset_token(token)
        if user is None or not user.is_active:
            return None
        return user

    async def update(self, user_id: EntityId, data: Union[UserUpdate, dict[str, Any]]) -> User:
        """Apply a partial update.

        Raises:
            NotFoundError: If the user does not exist
        """
        values = data.model_dump(exclude_unset=True) if isinstance(data, UserUpdate) else dict(data)
        if not values:
            return await self.get_by_id(user_id)
        user = await self.repo.update_one_by_id(user_id, values)
        if user is None:
            raise NotFoundError("User")
        return user

    async def change_password(self, user_id: EntityId, current_password: str, new_password: str) -> None:
        """Replace the password after checking the current one.

        Raises:
            NotFoundError: If the user does not exist
            BadRequestError: If ``current_password`` is wrong
        """
        user = await self.repo.find_one_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        if not verify_password(current_password, user.password):
            raise BadRequestError("Current password is incorrect")
        await self.repo.update_one_by_id(user_id, {"password": hash_password(new_password)})
        self._logger.info("Password changed", user_id=str(user_id))

    async def store_password_reset_token(
        self, user_id: EntityId, token: str, expires_at: datetime
    ) -> None:
        await self.repo.update_one_by_id(
            user_id,
            {"password_reset_token": token, "password_reset_expires": expires_at},
        )

    async def set_password(self, user_id: EntityId, new_password: str) -> None:
        """Set a new password and clear any pending reset token.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.repo.update_one_by_id(
            user_id,
            {
                "password": hash_password(new_password),
                "password_reset_token": None,
                "password_reset_expires": None,
            },
        )
        if user is None:
            raise NotFoundError("User")
        self._logger.info("Password reset", user_id=str(user_id))

    async def deactivate(self, user_id: EntityId) -> None:
        """Deactivate the account; it disappears from listings and lookups.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.repo.update_one_by_id(user_id, {"is_active": False})
        if user is None:
            raise NotFoundError("User")
        self._logger.info("User deactivated", user_id=str(user_id))

    async def update_last_login(self, user_id: EntityId) -> None:
        await self.repo.update_last_login(user_id)

    @staticmethod
    def to_response(user: User) -> UserResponse:
        return UserResponse.model_validate(user)
