"""Comment repository."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.logging import get_logger
from inkwell.models.comment import Comment, CommentStatus
from inkwell.repositories.base import BaseRepository, EntityId, as_uuid
from inkwell.repositories.pagination import (
    Join,
    ListOptions,
    PaginatedResult,
    PaginationQuery,
    Relation,
)
from inkwell.repositories.query import And, Eq, Exists, FilterInput, Range

logger = get_logger(__name__)

COMMENT_JOINS = (
    Join("author", ["first_name", "last_name", "avatar"]),
    Join("post", ["slug"]),
    Join("parent", ["content", "author_id", "created_at"]),
)

COMMENT_SEARCH_FIELDS = ("content",)
COMMENT_SORT_FIELDS = ("created_at", "updated_at", "like_count", "reply_count")

CommentList = Union[list[Comment], PaginatedResult[Comment]]


def comment_list_options(
    relation: Relation = Relation.default(),
    **kwargs: Any,
) -> ListOptions:
    return ListOptions(
        search_fields=COMMENT_SEARCH_FIELDS,
        sort_fields=COMMENT_SORT_FIELDS,
        relation=relation,
        **kwargs,
    )


class CommentRepository:
    """Repository for Comment entities.

    Comments expand to their author, the post slug and, for replies, the
    parent comment. Spam is excluded from the per-post listings.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._base_repo = BaseRepository(session, Comment, default_joins=COMMENT_JOINS)
        self._logger = get_logger(f"{__name__}.CommentRepository")

    @property
    def base(self) -> BaseRepository[Comment]:
        return self._base_repo

    # ========================================================================
    # DELEGATED METHODS
    # ========================================================================

    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> Comment:
        return await self._base_repo.create(data, session=session)

    async def find_all(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool = False,
        pagination: Optional[PaginationQuery] = None,
        options: Optional[ListOptions] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        return await self._base_repo.find_all(
            filters,
            include_deleted=include_deleted,
            pagination=pagination,
            options=options or comment_list_options(),
            session=session,
        )

    async def find_one_by_id(
        self,
        comment_id: EntityId,
        *,
        include_deleted: bool = False,
        relation: Relation = Relation.default(),
        session: Optional[AsyncSession] = None,
    ) -> Optional[Comment]:
        return await self._base_repo.find_one_by_id(
            comment_id, include_deleted=include_deleted, relation=relation, session=session
        )

    async def update_one_by_id(
        self,
        comment_id: EntityId,
        values: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Comment]:
        return await self._base_repo.update_one_by_id(comment_id, values, session=session)

    async def soft_delete_by_id(
        self,
        comment_id: EntityId,
        *,
        deleted_by: Optional[EntityId] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Comment]:
        return await self._base_repo.soft_delete_by_id(
            comment_id, deleted_by=deleted_by, session=session
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
    # CUSTOM COMMENT METHODS
    # ========================================================================

    async def find_by_post(
        self,
        post_id: EntityId,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        """Active comments on a post, newest first."""
        return await self.find_all(
            And(Eq("post_id", as_uuid(post_id)), Eq("status", CommentStatus.ACTIVE)),
            pagination=pagination,
            options=comment_list_options(order={"created_at": "desc"}),
            session=session,
        )

    async def find_root_comments_by_post(
        self,
        post_id: EntityId,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        """Top-level active comments on a post (no parent)."""
        return await self.find_all(
            And(
                Eq("post_id", as_uuid(post_id)),
                Exists("parent_id", False),
                Eq("status", CommentStatus.ACTIVE),
            ),
            pagination=pagination,
            options=comment_list_options(order={"created_at": "desc"}),
            session=session,
        )

    async def find_replies_by_parent(
        self,
        parent_id: EntityId,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        """Active replies to a comment in conversation order (oldest first)."""
        pagination_asc = pagination
        if pagination is not None and pagination.is_requested() and pagination.sort_order is None:
            pagination_asc = pagination.model_copy(update={"sort_order": "asc"})
        return await self.find_all(
            And(Eq("parent_id", as_uuid(parent_id)), Eq("status", CommentStatus.ACTIVE)),
            pagination=pagination_asc,
            options=comment_list_options(order={"created_at": "asc"}),
            session=session,
        )

    async def find_by_parent(
        self, parent_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> list[Comment]:
        """Every live reply to a comment regardless of status."""
        return await self._base_repo.find_all(
            Eq("parent_id", as_uuid(parent_id)), include_deleted=False, session=session
        )

    async def find_by_author(
        self,
        author_id: EntityId,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        return await self.find_all(
            Eq("author_id", as_uuid(author_id)),
            pagination=pagination,
            options=comment_list_options(order={"created_at": "desc"}),
            session=session,
        )

    async def find_spam(
        self,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> CommentList:
        return await self.find_all(
            Eq("status", CommentStatus.SPAM),
            pagination=pagination,
            options=comment_list_options(order={"created_at": "desc"}),
            session=session,
        )

    async def mark_as_spam(
        self, comment_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Comment]:
        self._logger.info("Marking comment as spam", comment_id=str(comment_id))
        return await self.update_one_by_id(
            comment_id, {"status": CommentStatus.SPAM}, session=session
        )

    # ========================================================================
    # COUNTERS
    # ========================================================================

    async def _bump(
        self,
        comment_id: EntityId,
        counter: str,
        delta: int,
        session: Optional[AsyncSession],
    ) -> Optional[Comment]:
        column = getattr(Comment, counter)
        filters: list[Any] = [Eq("id", as_uuid(comment_id))]
        if delta < 0:
            filters.append(Range(counter, gte=-delta))
        return await self._base_repo.update_one(
            And(*filters), {counter: column + delta}, session=session
        )

    async def increment_reply_count(
        self, comment_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Comment]:
        return await self._bump(comment_id, "reply_count", 1, session)

    async def decrement_reply_count(
        self, comment_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Comment]:
        return await self._bump(comment_id, "reply_count", -1, session)

    async def increment_like_count(
        self, comment_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Comment]:
        return await self._bump(comment_id, "like_count", 1, session)

    async def decrement_like_count(
        self, comment_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Comment]:
        return await self._bump(comment_id, "like_count", -1, session)
