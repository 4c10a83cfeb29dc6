"""Database seed script with sample accounts and posts.

Creates an admin and two regular users, a handful of posts in different
states, and a short comment thread so the API has something to return.

Usage:
    # Local development
    uv run python seed.py

    # Docker
    docker compose exec api uv run python seed.py

Features:
    - Idempotent: skipped when any user already exists
    - Goes through the services, so passwords are hashed and counters kept
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.database import session_scope
from inkwell.core.logging import configure_logging, get_logger
from inkwell.models.post import Post, PostStatus
from inkwell.models.user import User, UserRole
from inkwell.schemas.post import CommentCreate, PostCreate
from inkwell.schemas.user import UserCreate
from inkwell.services.comment import CommentService
from inkwell.services.like import LikeService
from inkwell.services.post import PostService
from inkwell.services.user import UserService

configure_logging()
logger = get_logger(__name__)

DEFAULT_PASSWORD = "Test@12345"

USERS = [
    {
        "first_name": "Admin",
        "last_name": "User",
        "email": "admin@example.com",
        "phone_number": "+1234567890",
        "address": "123 Admin Street, Admin City, AC 12345",
        "role": UserRole.ADMIN,
    },
    {
        "first_name": "John",
        "last_name": "Doe",
        "email": "john@example.com",
        "phone_number": "+1234567891",
        "address": "456 User Avenue, User City, UC 54321",
        "role": UserRole.USER,
    },
    {
        "first_name": "Jane",
        "last_name": "Smith",
        "email": "jane@example.com",
        "phone_number": "+1234567892",
        "address": "789 Writer Lane, Prose Town, PT 67890",
        "role": UserRole.USER,
    },
]

# Keyed by author email
POSTS = {
    "admin@example.com": [
        {
            "content": "Welcome to inkwell. House rules and how to get started.",
            "status": PostStatus.PUBLISHED,
            "tags": ["announcements"],
            "allow_comments": False,
        },
    ],
    "john@example.com": [
        {
            "content": "Async SQLAlchemy in practice: sessions, flushes and who commits",
            "status": PostStatus.PUBLISHED,
            "tags": ["python", "databases"],
            "meta_description": "Notes on transaction ownership in async services",
        },
        {
            "content": "Half-finished thoughts on pagination cursors",
            "status": PostStatus.DRAFT,
            "tags": ["api-design"],
        },
    ],
    "jane@example.com": [
        {
            "content": "Presigned uploads: letting clients talk to S3 directly",
            "status": PostStatus.PUBLISHED,
            "tags": ["aws", "api-design"],
        },
        {
            "content": "What I learned moving a blog between three databases",
            "status": PostStatus.ARCHIVED,
            "tags": ["databases"],
        },
    ],
}


async def check_if_seeded(session: AsyncSession) -> bool:
    """Check if database has already been seeded.

    Returns:
        True if any user exists, False if the database is empty
    """
    return await UserService(session).repo.count() > 0


async def seed_users(session: AsyncSession) -> dict[str, User]:
    """Create user accounts.

    Returns:
        Dictionary mapping email to User instance
    """
    logger.info("Seeding users")
    service = UserService(session)
    users = {}

    for user_data in USERS:
        user = await service.create(UserCreate(password=DEFAULT_PASSWORD, **user_data))
        users[user.email] = user
        logger.info("Created user", email=user.email, role=user.role.value)

    return users


async def seed_posts(session: AsyncSession, users: dict[str, User]) -> list[Post]:
    """Create posts for each author.

    Returns:
        Created posts in insertion order
    """
    logger.info("Seeding posts")
    service = PostService(session)
    posts = []

    for email, posts_data in POSTS.items():
        for post_data in posts_data:
            post = await service.create(PostCreate(**post_data), users[email].id)
            posts.append(post)
            logger.info("Created post", slug=post.slug, status=post.status.value)

    return posts


async def seed_discussion(session: AsyncSession, users: dict[str, User], posts: list[Post]) -> None:
    """Add a short comment thread and a few likes to the first open post."""
    logger.info("Seeding comments and likes")
    comments = CommentService(session)
    likes = LikeService(session)

    target = next(
        post for post in posts if post.status == PostStatus.PUBLISHED and post.allow_comments
    )
    jane = users["jane@example.com"]
    john = users["john@example.com"]

    question = await comments.create(
        CommentCreate(content="Does the repository ever commit on its own?", post_id=target.id),
        jane.id,
    )
    await comments.create(
        CommentCreate(
            content="Never. The request or the script owns the transaction.",
            post_id=target.id,
            parent_id=question.id,
        ),
        john.id,
    )
    await likes.like_post(jane.id, target.id)
    await likes.like_post(users["admin@example.com"].id, target.id)
    await likes.like_comment(john.id, question.id)
    await comments.like(question.id)


async def seed_database() -> None:
    """Main seeding function."""
    logger.info("Starting database seeding")

    async with session_scope() as session:
        if await check_if_seeded(session):
            logger.info("Database already contains data. Skipping seed (idempotent).")
            return

        users = await seed_users(session)
        posts = await seed_posts(session, users)
        await seed_discussion(session, users, posts)

    logger.info(
        "Database seeding completed successfully",
        users=len(users),
        posts=len(posts),
    )


if __name__ == "__main__":
    asyncio.run(seed_database())
