"""Like repository."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.logging import get_logger
from inkwell.models.like import Like, LikeType
from inkwell.repositories.base import BaseRepository, EntityId, as_uuid
from inkwell.repositories.pagination import ListOptions, PaginatedResult, PaginationQuery
from inkwell.repositories.query import And, Eq, FilterInput

logger = get_logger(__name__)

LikeList = Union[list[Like], PaginatedResult[Like]]


def _target_filter(target_id: EntityId, like_type: LikeType) -> And:
    return And(Eq("target_id", as_uuid(target_id)), Eq("like_type", LikeType(like_type)))


class LikeRepository:
    """Repository for Like entities.

    Likes are removed physically: a like is either there or not, and
    ``unique_key`` must be free again once a user unlikes.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._base_repo = BaseRepository(session, Like)
        self._logger = get_logger(f"{__name__}.LikeRepository")

    @property
    def base(self) -> BaseRepository[Like]:
        return self._base_repo

    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> Like:
        return await self._base_repo.create(data, session=session)

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
    # CUSTOM LIKE METHODS
    # ========================================================================

    async def find_by_user_and_target(
        self,
        user_id: EntityId,
        target_id: EntityId,
        like_type: LikeType,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Like]:
        return await self._base_repo.find_one(
            And(Eq("user_id", as_uuid(user_id)), _target_filter(target_id, like_type)),
            include_deleted=False,
            session=session,
        )

    async def find_by_user(
        self,
        user_id: EntityId,
        like_type: Optional[LikeType] = None,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> LikeList:
        filters: dict[str, Any] = {"user_id": as_uuid(user_id)}
        if like_type is not None:
            filters["like_type"] = LikeType(like_type)
        return await self._base_repo.find_all(
            filters,
            include_deleted=False,
            pagination=pagination,
            options=ListOptions(order={"created_at": "desc"}),
            session=session,
        )

    async def find_by_target(
        self,
        target_id: EntityId,
        like_type: LikeType,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> LikeList:
        return await self._base_repo.find_all(
            _target_filter(target_id, like_type),
            include_deleted=False,
            pagination=pagination,
            options=ListOptions(order={"created_at": "desc"}),
            session=session,
        )

    async def count_by_target(
        self,
        target_id: EntityId,
        like_type: LikeType,
        *,
        session: Optional[AsyncSession] = None,
    ) -> int:
        return await self._base_repo.count(
            _target_filter(target_id, like_type), include_deleted=False, session=session
        )

    async def delete_by_user_and_target(
        self,
        user_id: EntityId,
        target_id: EntityId,
        like_type: LikeType,
        *,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """Remove one user's like; True if there was one."""
        removed = await self._base_repo.delete(
            And(Eq("user_id", as_uuid(user_id)), _target_filter(target_id, like_type)),
            session=session,
        )
        self._logger.info(
            "Like removed",
            user_id=str(user_id),
            target_id=str(target_id),
            like_type=LikeType(like_type).value,
            removed=removed,
        )
        return removed

    async def delete_by_target(
        self,
        target_id: EntityId,
        like_type: LikeType,
        *,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Remove every like of a target; returns how many went."""
        return await self._base_repo.delete_many(
            _target_filter(target_id, like_type), session=session
        )
