"""Test CommentService counters and validation."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from factories import create_post, create_user
from inkwell.core.exceptions import BadRequestError, NotFoundError
from inkwell.models.comment import CommentStatus
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.repositories.pagination import Relation
from inkwell.repositories.post import PostRepository
from inkwell.schemas.post import CommentCreate, CommentResponse, CommentUpdate
from inkwell.services.comment import CommentService


@pytest.fixture
def service(db_session: AsyncSession) -> CommentService:
    return CommentService(db_session)


@pytest.fixture
async def author(db_session: AsyncSession) -> User:
    return await create_user(db_session, first_name="Grace")


@pytest.fixture
async def post(db_session: AsyncSession, author: User) -> Post:
    return await create_post(db_session, author=author, slug="discussion")


async def _comment_count(db_session: AsyncSession, post_id: uuid.UUID) -> int:
    current = await PostRepository(db_session).find_one_by_id(post_id, relation=Relation.none())
    assert current is not None
    return current.comment_count


class TestCreateComment:
    """Test adding comments and replies."""

    async def test_create_bumps_post_counter(
        self, service: CommentService, post: Post, author: User, db_session: AsyncSession
    ) -> None:
        comment = await service.create(CommentCreate(content="First!", post_id=post.id), author.id)

        assert comment.status == CommentStatus.ACTIVE
        assert comment.author is not None
        assert comment.author.first_name == "Grace"
        assert comment.post is not None
        assert comment.post.slug == "discussion"
        assert await _comment_count(db_session, post.id) == 1

    async def test_reply_bumps_parent_counter(
        self, service: CommentService, post: Post, author: User
    ) -> None:
        parent = await service.create(CommentCreate(content="root", post_id=post.id), author.id)

        reply = await service.create(
            CommentCreate(content="reply", post_id=post.id, parent_id=parent.id), author.id
        )

        assert reply.parent is not None
        assert reply.parent.content == "root"
        assert (await service.get(parent.id)).reply_count == 1

    async def test_missing_post(self, service: CommentService, author: User) -> None:
        with pytest.raises(NotFoundError, match="Post not found"):
            await service.create(CommentCreate(content="x", post_id=uuid.uuid4()), author.id)

    async def test_comments_disabled(
        self, service: CommentService, author: User, db_session: AsyncSession
    ) -> None:
        closed = await create_post(db_session, author=author, allow_comments=False)

        with pytest.raises(BadRequestError, match="disabled"):
            await service.create(CommentCreate(content="x", post_id=closed.id), author.id)

    async def test_missing_parent(self, service: CommentService, post: Post, author: User) -> None:
        with pytest.raises(NotFoundError, match="Parent comment not found"):
            await service.create(
                CommentCreate(content="x", post_id=post.id, parent_id=uuid.uuid4()), author.id
            )

    async def test_parent_on_another_post(
        self, service: CommentService, post: Post, author: User, db_session: AsyncSession
    ) -> None:
        other_post = await create_post(db_session, author=author)
        parent = await service.create(CommentCreate(content="x", post_id=other_post.id), author.id)

        with pytest.raises(BadRequestError, match="another post"):
            await service.create(
                CommentCreate(content="y", post_id=post.id, parent_id=parent.id), author.id
            )

    async def test_response_schema(self, service: CommentService, post: Post, author: User) -> None:
        comment = await service.create(CommentCreate(content="shape", post_id=post.id), author.id)

        body = CommentResponse.model_validate(comment).model_dump(by_alias=True)

        assert body["content"] == "shape"
        assert body["author"]["firstName"] == "Grace"
        assert body["post"]["slug"] == "discussion"


class TestChangeComment:
    """Test updates, removal, likes and moderation."""

    async def test_update(self, service: CommentService, post: Post, author: User) -> None:
        comment = await service.create(CommentCreate(content="typo", post_id=post.id), author.id)

        updated = await service.update(comment.id, CommentUpdate(content="fixed"))

        assert updated.content == "fixed"

    async def test_remove_rolls_back_counters(
        self, service: CommentService, post: Post, author: User, db_session: AsyncSession
    ) -> None:
        parent = await service.create(CommentCreate(content="root", post_id=post.id), author.id)
        reply = await service.create(
            CommentCreate(content="reply", post_id=post.id, parent_id=parent.id), author.id
        )

        await service.remove(reply.id, deleted_by=author.id)

        assert (await service.get(parent.id)).reply_count == 0
        assert await _comment_count(db_session, post.id) == 1
        with pytest.raises(NotFoundError):
            await service.get(reply.id)

    async def test_remove_missing(self, service: CommentService) -> None:
        with pytest.raises(NotFoundError):
            await service.remove(uuid.uuid4())

    async def test_like_and_unlike(self, service: CommentService, post: Post, author: User) -> None:
        comment = await service.create(CommentCreate(content="nice", post_id=post.id), author.id)

        assert (await service.like(comment.id)).like_count == 1
        assert (await service.unlike(comment.id)).like_count == 0
        # already at zero
        assert (await service.unlike(comment.id)).like_count == 0

    async def test_mark_as_spam_hides_from_post_listing(
        self, service: CommentService, post: Post, author: User
    ) -> None:
        comment = await service.create(CommentCreate(content="buy now", post_id=post.id), author.id)

        await service.mark_as_spam(comment.id)

        assert await service.list_by_post(post.id) == []
        assert [item.id for item in await service.list_spam()] == [comment.id]

    async def test_listings(self, service: CommentService, post: Post, author: User) -> None:
        root = await service.create(CommentCreate(content="root", post_id=post.id), author.id)
        await service.create(
            CommentCreate(content="reply", post_id=post.id, parent_id=root.id), author.id
        )

        assert len(await service.list_by_post(post.id)) == 2
        assert len(await service.list_root_by_post(post.id)) == 1
        assert len(await service.list_replies(root.id)) == 1
        assert len(await service.list_by_author(author.id)) == 2
