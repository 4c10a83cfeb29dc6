"""Blog post model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.models.base import Base, Entity, UTCDateTime, generate_repr

if TYPE_CHECKING:
    from inkwell.models.user import User


class PostStatus(str, Enum):
    """Publication state of a post."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class Post(Base, Entity):
    """A post written by a user.

    Attributes:
        slug: URL slug, unique
        content: Post body
        featured_image: Public URL of the cover image
        author_id: Foreign key to users
        status: DRAFT, PUBLISHED or ARCHIVED
        published_at: When the post was last published
        tags: List of tag strings
        allow_comments: Whether new comments are accepted
        meta_description: SEO description
        meta_keywords: SEO keyword list
        view_count: Number of views
        like_count: Number of likes
        comment_count: Number of live comments
        author: Related user, loaded only on request
    """

    __tablename__ = "posts"

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    featured_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    author_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[PostStatus] = mapped_column(
        SQLEnum(PostStatus, native_enum=False, length=20),
        nullable=False,
        default=PostStatus.DRAFT,
        index=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    allow_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    meta_description: Mapped[str | None] = mapped_column(String(300), nullable=True)
    meta_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships are never lazy-loaded; repositories request them explicitly
    author: Mapped[Optional["User"]] = relationship("User", lazy="noload")

    __repr__ = generate_repr("id", "slug", "status")
