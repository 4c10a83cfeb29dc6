"""User repository."""

from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.logging import get_logger
from inkwell.models.base import utcnow
from inkwell.models.user import User
from inkwell.repositories.base import BaseRepository, EntityId
from inkwell.repositories.pagination import ListOptions, PaginatedResult, PaginationQuery
from inkwell.repositories.query import Eq, FilterInput

logger = get_logger(__name__)


class UserRepository:
    """Repository for User entities using composition pattern.

    Standard operations are delegated to ``BaseRepository[User]``; the
    lookups below are the ones authentication needs.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._base_repo = BaseRepository(session, User)
        self._logger = get_logger(f"{__name__}.UserRepository")

    @property
    def base(self) -> BaseRepository[User]:
        return self._base_repo

    # ========================================================================
    # DELEGATED METHODS
    # ========================================================================

    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> User:
        return await self._base_repo.create(data, session=session)

    async def find_all(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool = False,
        pagination: Optional[PaginationQuery] = None,
        options: Optional[ListOptions] = None,
        session: Optional[AsyncSession] = None,
    ) -> Union[list[User], PaginatedResult[User]]:
        return await self._base_repo.find_all(
            filters,
            include_deleted=include_deleted,
            pagination=pagination,
            options=options,
            session=session,
        )

    async def find_one(
        self,
        filters: FilterInput,
        *,
        include_deleted: bool = False,
        session: Optional[AsyncSession] = None,
    ) -> Optional[User]:
        return await self._base_repo.find_one(
            filters, include_deleted=include_deleted, session=session
        )

    async def find_one_by_id(
        self,
        user_id: EntityId,
        *,
        include_deleted: bool = False,
        select_fields: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[User]:
        return await self._base_repo.find_one_by_id(
            user_id,
            include_deleted=include_deleted,
            select_fields=select_fields,
            session=session,
        )

    async def update_one_by_id(
        self,
        user_id: EntityId,
        values: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[User]:
        return await self._base_repo.update_one_by_id(user_id, values, session=session)

    async def exists(
        self,
        filters: FilterInput,
        *,
        include_deleted: bool = False,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        return await self._base_repo.exists(
            filters, include_deleted=include_deleted, session=session
        )

    async def count(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool = False,
        session: Optional[AsyncSession] = None,
    ) -> int:
        return await self._base_repo.count(
            filters, include_deleted=include_deleted, session=session
        )

    # ========================================================================
    # CUSTOM USER METHODS
    # ========================================================================

    async def find_by_email(
        self, email: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        """Look up a live user by email. Emails are stored lower-cased."""
        self._logger.debug("Finding user by email", email=email)
        return await self._base_repo.find_one(
            Eq("email", email.strip().lower()), include_deleted=False, session=session
        )

    async def find_by_phone_number(
        self, phone_number: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self._base_repo.find_one(
            Eq("phone_number", phone_number), include_deleted=False, session=session
        )

    async def find_by_email_verification_token(
        self, token: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self._base_repo.find_one(
            Eq("email_verification_token", token), include_deleted=False, session=session
        )

    async def find_by_password_reset_token(
        self, token: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        """Find the user holding ``token``. Expiry is checked by the caller."""
        return await self._base_repo.find_one(
            Eq("password_reset_token", token), include_deleted=False, session=session
        )

    async def update_last_login(
        self, user_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self._base_repo.update_one_by_id(
            user_id, {"last_login_at": utcnow()}, session=session
        )
