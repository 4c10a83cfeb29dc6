"""Post repository."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.logging import get_logger
from inkwell.models.base import utcnow
from inkwell.models.post import Post, PostStatus
from inkwell.repositories.base import BaseRepository, EntityId, as_uuid
from inkwell.repositories.pagination import (
    GroupedCount,
    Join,
    ListOptions,
    PaginatedResult,
    PaginationQuery,
    Relation,
    TotalCount,
)
from inkwell.repositories.query import And, Contains, Eq, FilterInput, Range

logger = get_logger(__name__)

AUTHOR_JOIN = Join("author", ["first_name", "last_name", "email", "avatar"])

# Tags are matched element-wise through find_by_tag, not by free text
POST_SEARCH_FIELDS = ("content", "slug")
POST_SORT_FIELDS = (
    "created_at",
    "updated_at",
    "published_at",
    "view_count",
    "like_count",
    "comment_count",
)

PostList = Union[list[Post], PaginatedResult[Post]]


def post_list_options(
    relation: Relation = Relation.default(),
    default_sort_field: str = "created_at",
    **kwargs: Any,
) -> ListOptions:
    """List options shared by every post listing."""
    return ListOptions(
        search_fields=POST_SEARCH_FIELDS,
        sort_fields=POST_SORT_FIELDS,
        default_sort_field=default_sort_field,
        relation=relation,
        **kwargs,
    )


class PostRepository:
    """Repository for Post entities.

    Relation expansion defaults to the author's public fields. Counter
    updates run as single UPDATE statements so concurrent requests do not
    lose increments.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._base_repo = BaseRepository(session, Post, default_joins=[AUTHOR_JOIN])
        self._logger = get_logger(f"{__name__}.PostRepository")

    @property
    def base(self) -> BaseRepository[Post]:
        return self._base_repo

    # ========================================================================
    # DELEGATED METHODS
    # ========================================================================

    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> Post:
        return await self._base_repo.create(data, session=session)

    async def find_all(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool = False,
        pagination: Optional[PaginationQuery] = None,
        options: Optional[ListOptions] = None,
        session: Optional[AsyncSession] = None,
    ) -> PostList:
        return await self._base_repo.find_all(
            filters,
            include_deleted=include_deleted,
            pagination=pagination,
            options=options or post_list_options(),
            session=session,
        )

    async def find_one_by_id(
        self,
        post_id: EntityId,
        *,
        include_deleted: bool = False,
        relation: Relation = Relation.default(),
        session: Optional[AsyncSession] = None,
    ) -> Optional[Post]:
        return await self._base_repo.find_one_by_id(
            post_id, include_deleted=include_deleted, relation=relation, session=session
        )

    async def update_one_by_id(
        self,
        post_id: EntityId,
        values: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Post]:
        return await self._base_repo.update_one_by_id(post_id, values, session=session)

    async def soft_delete_by_id(
        self,
        post_id: EntityId,
        *,
        deleted_by: Optional[EntityId] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Post]:
        return await self._base_repo.soft_delete_by_id(
            post_id, deleted_by=deleted_by, session=session
        )

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

    async def get_grouped_counts(
        self,
        group_field: Optional[str] = None,
        extra_filter: FilterInput = None,
        *,
        include_deleted: bool = False,
        session: Optional[AsyncSession] = None,
    ) -> Union[TotalCount, list[GroupedCount]]:
        return await self._base_repo.get_grouped_counts(
            group_field, extra_filter, include_deleted=include_deleted, session=session
        )

    # ========================================================================
    # CUSTOM POST METHODS
    # ========================================================================

    async def find_by_slug(
        self,
        slug: str,
        *,
        relation: Relation = Relation.default(),
        session: Optional[AsyncSession] = None,
    ) -> Optional[Post]:
        return await self._base_repo.find_one(
            Eq("slug", slug), include_deleted=False, relation=relation, session=session
        )

    async def find_published(
        self,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> PostList:
        """Published posts, most recently published first."""
        return await self.find_all(
            Eq("status", PostStatus.PUBLISHED),
            pagination=pagination,
            options=post_list_options(
                default_sort_field="published_at", order={"published_at": "desc"}
            ),
            session=session,
        )

    async def find_by_author(
        self,
        author_id: EntityId,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> PostList:
        return await self.find_all(
            {"author_id": as_uuid(author_id)},
            pagination=pagination,
            options=post_list_options(order={"created_at": "desc"}),
            session=session,
        )

    async def find_by_tag(
        self,
        tag: str,
        *,
        pagination: Optional[PaginationQuery] = None,
        session: Optional[AsyncSession] = None,
    ) -> PostList:
        """Published posts carrying ``tag``."""
        return await self.find_all(
            And(Contains("tags", tag), Eq("status", PostStatus.PUBLISHED)),
            pagination=pagination,
            options=post_list_options(
                default_sort_field="published_at", order={"published_at": "desc"}
            ),
            session=session,
        )

    async def publish(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        self._logger.info("Publishing post", post_id=str(post_id))
        return await self.update_one_by_id(
            post_id,
            {"status": PostStatus.PUBLISHED, "published_at": utcnow()},
            session=session,
        )

    async def unpublish(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        self._logger.info("Unpublishing post", post_id=str(post_id))
        return await self.update_one_by_id(
            post_id, {"status": PostStatus.DRAFT, "published_at": None}, session=session
        )

    async def archive(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        self._logger.info("Archiving post", post_id=str(post_id))
        return await self.update_one_by_id(
            post_id, {"status": PostStatus.ARCHIVED}, session=session
        )

    # ========================================================================
    # COUNTERS
    # ========================================================================

    async def _bump(
        self,
        post_id: EntityId,
        counter: str,
        delta: int,
        session: Optional[AsyncSession],
    ) -> Optional[Post]:
        column = getattr(Post, counter)
        filters: list[Any] = [Eq("id", as_uuid(post_id))]
        if delta < 0:
            # never below zero
            filters.append(Range(counter, gte=-delta))
        return await self._base_repo.update_one(
            And(*filters), {counter: column + delta}, session=session
        )

    async def increment_view_count(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        return await self._bump(post_id, "view_count", 1, session)

    async def increment_like_count(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        return await self._bump(post_id, "like_count", 1, session)

    async def decrement_like_count(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        return await self._bump(post_id, "like_count", -1, session)

    async def increment_comment_count(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        return await self._bump(post_id, "comment_count", 1, session)

    async def decrement_comment_count(
        self, post_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> Optional[Post]:
        return await self._bump(post_id, "comment_count", -1, session)
