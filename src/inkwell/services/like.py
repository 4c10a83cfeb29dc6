"""Like service."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.exceptions import ConflictError, NotFoundError
from inkwell.core.logging import get_logger
from inkwell.models.like import Like, LikeType, like_unique_key
from inkwell.repositories.base import EntityId, as_uuid
from inkwell.repositories.like import LikeRepository
from inkwell.repositories.post import PostRepository


class LikeService:
    """Likes on posts and comments; one per user and target.

    Post likes also move the post's ``like_count``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = LikeRepository(session)
        self.posts = PostRepository(session)
        self._logger = get_logger(f"{__name__}.LikeService")

    async def _like(self, user_id: EntityId, target_id: EntityId, like_type: LikeType) -> Like:
        if await self.repo.find_by_user_and_target(user_id, target_id, like_type):
            label = "Post" if like_type == LikeType.POST else "Comment"
            raise ConflictError(f"{label} already liked by user")
        like = await self.repo.create(
            {
                "user_id": as_uuid(user_id),
                "target_id": as_uuid(target_id),
                "like_type": like_type,
                "unique_key": like_unique_key(user_id, target_id, like_type),
            }
        )
        self._logger.info(
            "Like added", user_id=str(user_id), target_id=str(target_id), like_type=like_type.value
        )
        return like

    async def _unlike(self, user_id: EntityId, target_id: EntityId, like_type: LikeType) -> None:
        removed = await self.repo.delete_by_user_and_target(user_id, target_id, like_type)
        if not removed:
            raise NotFoundError("Like")

    async def like_post(self, user_id: EntityId, post_id: EntityId) -> Like:
        """Raises ConflictError if the user already liked the post."""
        like = await self._like(user_id, post_id, LikeType.POST)
        await self.posts.increment_like_count(post_id)
        return like

    async def like_comment(self, user_id: EntityId, comment_id: EntityId) -> Like:
        return await self._like(user_id, comment_id, LikeType.COMMENT)

    async def unlike_post(self, user_id: EntityId, post_id: EntityId) -> None:
        """Raises NotFoundError if there was no like to remove."""
        await self._unlike(user_id, post_id, LikeType.POST)
        await self.posts.decrement_like_count(post_id)

    async def unlike_comment(self, user_id: EntityId, comment_id: EntityId) -> None:
        await self._unlike(user_id, comment_id, LikeType.COMMENT)

    async def get_post_likes(self, post_id: EntityId) -> list[Like]:
        return await self.repo.find_by_target(post_id, LikeType.POST)

    async def get_comment_likes(self, comment_id: EntityId) -> list[Like]:
        return await self.repo.find_by_target(comment_id, LikeType.COMMENT)

    async def get_post_like_count(self, post_id: EntityId) -> int:
        return await self.repo.count_by_target(post_id, LikeType.POST)

    async def get_comment_like_count(self, comment_id: EntityId) -> int:
        return await self.repo.count_by_target(comment_id, LikeType.COMMENT)

    async def get_user_likes(self, user_id: EntityId, like_type: Optional[LikeType] = None) -> list[Like]:
        return await self.repo.find_by_user(user_id, like_type)

    async def is_liked_by_user(self, user_id: EntityId, target_id: EntityId, like_type: LikeType) -> bool:
        return await self.repo.find_by_user_and_target(user_id, target_id, like_type) is not None

    async def delete_likes_by_target(self, target_id: EntityId, like_type: LikeType) -> int:
        return await self.repo.delete_by_target(target_id, like_type)
