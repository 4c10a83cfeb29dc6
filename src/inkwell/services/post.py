"""Post service."""

import re
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from inkwell.core.logging import get_logger
from inkwell.models.base import utcnow
from inkwell.models.post import Post, PostStatus
from inkwell.models.user import UserRole
from inkwell.repositories.base import EntityId, as_uuid
from inkwell.repositories.pagination import GroupedCount, PaginatedResult, PaginationQuery, Relation
from inkwell.repositories.post import PostRepository
from inkwell.schemas.post import PostCreate, PostUpdate

PostList = Union[list[Post], PaginatedResult[Post]]
# Module-level so the ``list`` method does not shadow the builtin
StatusCounts = list[GroupedCount]

_SLUG_SOURCE_LENGTH = 50


def slugify(text: str) -> str:
    """Lower-case, keep ``[a-z0-9-]``, turn whitespace runs into single dashes."""
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip().strip("-")


def generate_slug(content: Optional[str]) -> str:
    """Slug from the first 50 characters of the content, else from the current time."""
    slug = slugify(content[:_SLUG_SOURCE_LENGTH]) if content else ""
    return slug or slugify(utcnow().isoformat())


class PostService:
    """Service for posts.

    Reads expand the author (name, email, avatar) by default. Deletion is
    soft; the owner or an admin may delete.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = PostRepository(session)
        self._logger = get_logger(f"{__name__}.PostService")

    # ========================================================================
    # READS
    # ========================================================================

    async def list(self, pagination: Optional[PaginationQuery] = None) -> PostList:
        return await self.repo.find_all(pagination=pagination)

    async def list_published(self, pagination: Optional[PaginationQuery] = None) -> PostList:
        return await self.repo.find_published(pagination=pagination)

    async def list_by_author(
        self, author_id: EntityId, pagination: Optional[PaginationQuery] = None
    ) -> PostList:
        return await self.repo.find_by_author(author_id, pagination=pagination)

    async def list_by_tag(self, tag: str, pagination: Optional[PaginationQuery] = None) -> PostList:
        return await self.repo.find_by_tag(tag, pagination=pagination)

    async def get(self, post_id: EntityId) -> Post:
        """Raises NotFoundError if the post does not exist or was deleted."""
        post = await self.repo.find_one_by_id(post_id)
        if post is None:
            raise NotFoundError("Post")
        return post

    async def get_by_slug(self, slug: str) -> Post:
        post = await self.repo.find_by_slug(slug)
        if post is None:
            raise NotFoundError("Post")
        return post

    async def count_by_status(self) -> StatusCounts:
        return await self.repo.get_grouped_counts("status")

    # ========================================================================
    # WRITES
    # ========================================================================

    async def create(self, data: PostCreate, author_id: EntityId) -> Post:
        """Create a post, deriving the slug from the content when none is given.

        Raises:
            ConflictError: If a live post already uses the slug
        """
        slug = (slugify(data.slug) if data.slug else "") or generate_slug(data.content)
        if await self.repo.find_by_slug(slug, relation=Relation.none()):
            raise ConflictError("Post with this slug already exists")

        values = data.model_dump(exclude={"slug"})
        values.update(slug=slug, author_id=as_uuid(author_id))
        if data.status == PostStatus.PUBLISHED:
            values["published_at"] = utcnow()

        post = await self.repo.create(values)
        self._logger.info("Post created", post_id=str(post.id), slug=slug, author_id=str(author_id))
        return await self.get(post.id)

    async def update(self, post_id: EntityId, data: PostUpdate) -> Post:
        """Apply the fields present in ``data``; an explicit null image clears it.

        Raises:
            NotFoundError: If the post does not exist
        """
        values = data.model_dump(exclude_unset=True)
        if values:
            post = await self.repo.update_one_by_id(post_id, values)
            if post is None:
                raise NotFoundError("Post")
        return await self.get(post_id)

    async def remove(self, post_id: EntityId, deleted_by: Optional[EntityId] = None) -> None:
        post = await self.repo.soft_delete_by_id(post_id, deleted_by=deleted_by)
        if post is None:
            raise NotFoundError("Post")
        self._logger.info("Post removed", post_id=str(post_id))

    async def remove_if_authorized(
        self, post_id: EntityId, requester_id: EntityId, requester_role: UserRole
    ) -> None:
        """Soft-delete the post if the requester owns it or is an admin.

        Raises:
            NotFoundError: If the post does not exist
            ForbiddenError: If the requester may not delete it
        """
        post = await self.repo.find_one_by_id(post_id, relation=Relation.none())
        if post is None:
            raise NotFoundError("Post")
        is_admin = UserRole(requester_role) == UserRole.ADMIN
        is_owner = post.author_id == as_uuid(requester_id)
        if not (is_admin or is_owner):
            raise ForbiddenError("You are not allowed to delete this post")
        await self.remove(post_id, deleted_by=requester_id)

    async def _transition(self, post: Optional[Post], post_id: EntityId) -> Post:
        if post is None:
            raise NotFoundError("Post")
        return await self.get(post_id)

    async def publish(self, post_id: EntityId) -> Post:
        return await self._transition(await self.repo.publish(post_id), post_id)

    async def unpublish(self, post_id: EntityId) -> Post:
        return await self._transition(await self.repo.unpublish(post_id), post_id)

    async def archive(self, post_id: EntityId) -> Post:
        return await self._transition(await self.repo.archive(post_id), post_id)

    async def increment_view_count(self, post_id: EntityId) -> Post:
        post = await self.repo.increment_view_count(post_id)
        if post is None:
            raise NotFoundError("Post")
        return post
