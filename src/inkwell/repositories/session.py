"""Session (refresh token) repository."""

from collections.abc import Mapping
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.logging import get_logger
from inkwell.models.base import utcnow
from inkwell.models.session import Session
from inkwell.repositories.base import BaseRepository, EntityId, as_uuid
from inkwell.repositories.query import Eq, Range

logger = get_logger(__name__)


class SessionRepository:
    """Repository for login sessions.

    Sessions are removed physically on logout, rotation and expiry.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._base_repo = BaseRepository(session, Session)
        self._logger = get_logger(f"{__name__}.SessionRepository")

    @property
    def base(self) -> BaseRepository[Session]:
        return self._base_repo

    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> Session:
        return await self._base_repo.create(data, session=session)

    async def find_one_by_id(
        self, session_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Session]:
        return await self._base_repo.find_one_by_id(
            session_id, include_deleted=False, session=session
        )

    async def find_by_refresh_token(
        self, refresh_token: str, *, session: Optional[AsyncSession] = None
    ) -> Optional[Session]:
        return await self._base_repo.find_one(
            Eq("refresh_token", refresh_token), include_deleted=False, session=session
        )

    async def find_by_user_id(
        self, user_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> list[Session]:
        return await self._base_repo.find_all(
            Eq("user_id", as_uuid(user_id)), include_deleted=False, session=session
        )

    async def delete_by_id(
        self, session_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> bool:
        return await self._base_repo.delete_one_by_id(session_id, session=session)

    async def delete_by_refresh_token(
        self, refresh_token: str, *, session: Optional[AsyncSession] = None
    ) -> bool:
        return await self._base_repo.delete(Eq("refresh_token", refresh_token), session=session)

    async def delete_by_user_id(
        self, user_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> int:
        removed = await self._base_repo.delete_many(
            Eq("user_id", as_uuid(user_id)), session=session
        )
        self._logger.info("User sessions removed", user_id=str(user_id), count=removed)
        return removed

    async def delete_expired(self, *, session: Optional[AsyncSession] = None) -> int:
        removed = await self._base_repo.delete_many(
            Range("expires_at", lt=utcnow()), session=session
        )
        self._logger.info("Expired sessions removed", count=removed)
        return removed
