"""Comment service."""

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.exceptions import BadRequestError, NotFoundError
from inkwell.core.logging import get_logger
from inkwell.models.comment import Comment, CommentStatus
from inkwell.repositories.base import EntityId, as_uuid
from inkwell.repositories.comment import CommentRepository
from inkwell.repositories.pagination import PaginatedResult, PaginationQuery, Relation
from inkwell.repositories.post import PostRepository
from inkwell.schemas.post import CommentCreate, CommentUpdate

CommentList = Union[list[Comment], PaginatedResult[Comment]]


class CommentService:
    """Service for comments and threaded replies.

    Creating and removing comments keeps the post's ``comment_count`` and the
    parent's ``reply_count`` in step.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = CommentRepository(session)
        self.posts = PostRepository(session)
        self._logger = get_logger(f"{__name__}.CommentService")

    # ========================================================================
    # READS
    # ========================================================================

    async def list_by_post(
        self, post_id: EntityId, pagination: Optional[PaginationQuery] = None
    ) -> CommentList:
        return await self.repo.find_by_post(post_id, pagination=pagination)

    async def list_root_by_post(
        self, post_id: EntityId, pagination: Optional[PaginationQuery] = None
    ) -> CommentList:
        return await self.repo.find_root_comments_by_post(post_id, pagination=pagination)

    async def list_replies(
        self, parent_id: EntityId, pagination: Optional[PaginationQuery] = None
    ) -> CommentList:
        return await self.repo.find_replies_by_parent(parent_id, pagination=pagination)

    async def list_by_author(
        self, author_id: EntityId, pagination: Optional[PaginationQuery] = None
    ) -> CommentList:
        return await self.repo.find_by_author(author_id, pagination=pagination)

    async def list_spam(self, pagination: Optional[PaginationQuery] = None) -> CommentList:
        return await self.repo.find_spam(pagination=pagination)

    async def get(self, comment_id: EntityId) -> Comment:
        comment = await self.repo.find_one_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment")
        return comment

    # ========================================================================
    # WRITES
    # ========================================================================

    async def create(self, data: CommentCreate, author_id: EntityId) -> Comment:
        """Add a comment or reply.

        Raises:
            NotFoundError: If the post or the parent comment does not exist
            BadRequestError: If the post is closed for comments or the parent
                belongs to another post
        """
        post = await self.posts.find_one_by_id(data.post_id, relation=Relation.none())
        if post is None:
            raise NotFoundError("Post")
        if not post.allow_comments:
            raise BadRequestError("Comments are disabled for this post")

        if data.parent_id is not None:
            parent = await self.repo.find_one_by_id(data.parent_id, relation=Relation.none())
            if parent is None:
                raise NotFoundError("Comment", "Parent comment not found")
            if parent.post_id != data.post_id:
                raise BadRequestError("Parent comment belongs to another post")

        comment = await self.repo.create(
            {
                "content": data.content,
                "post_id": data.post_id,
                "parent_id": data.parent_id,
                "author_id": as_uuid(author_id),
                "status": CommentStatus.ACTIVE,
            }
        )
        await self.posts.increment_comment_count(data.post_id)
        if data.parent_id is not None:
            await self.repo.increment_reply_count(data.parent_id)

        self._logger.info(
            "Comment created",
            comment_id=str(comment.id),
            post_id=str(data.post_id),
            is_reply=data.parent_id is not None,
        )
        return await self.get(comment.id)

    async def update(self, comment_id: EntityId, data: CommentUpdate) -> Comment:
        comment = await self.repo.update_one_by_id(comment_id, data.model_dump(exclude_unset=True))
        if comment is None:
            raise NotFoundError("Comment")
        return await self.get(comment_id)

    async def remove(self, comment_id: EntityId, deleted_by: Optional[EntityId] = None) -> None:
        """Soft-delete a comment and roll back the counters it contributed to."""
        comment = await self.repo.find_one_by_id(comment_id, relation=Relation.none())
        if comment is None:
            raise NotFoundError("Comment")

        await self.posts.decrement_comment_count(comment.post_id)
        if comment.parent_id is not None:
            await self.repo.decrement_reply_count(comment.parent_id)
        await self.repo.soft_delete_by_id(comment_id, deleted_by=deleted_by)
        self._logger.info("Comment removed", comment_id=str(comment_id))

    async def like(self, comment_id: EntityId) -> Comment:
        comment = await self.repo.increment_like_count(comment_id)
        if comment is None:
            raise NotFoundError("Comment")
        return comment

    async def unlike(self, comment_id: EntityId) -> Comment:
        comment = await self.repo.decrement_like_count(comment_id)
        if comment is None:
            # either missing or already at zero
            return await self.get(comment_id)
        return comment

    async def mark_as_spam(self, comment_id: EntityId) -> Comment:
        comment = await self.repo.mark_as_spam(comment_id)
        if comment is None:
            raise NotFoundError("Comment")
        self._logger.info("Comment marked as spam", comment_id=str(comment_id))
        return comment
