"""Comment model with single-level threading."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.models.base import Base, Entity, generate_repr

if TYPE_CHECKING:
    from inkwell.models.post import Post
    from inkwell.models.user import User


class CommentStatus(str, Enum):
    """Moderation state of a comment."""

    ACTIVE = "ACTIVE"
    SPAM = "SPAM"


class Comment(Base, Entity):
    """A comment on a post, optionally replying to another comment."""

    __tablename__ = "comments"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    status: Mapped[CommentStatus] = mapped_column(
        SQLEnum(CommentStatus, native_enum=False, length=20),
        nullable=False,
        default=CommentStatus.ACTIVE,
        index=True,
    )
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    author: Mapped[Optional["User"]] = relationship("User", lazy="noload")
    post: Mapped[Optional["Post"]] = relationship("Post", lazy="noload")
    parent: Mapped[Optional["Comment"]] = relationship(
        "Comment",
        remote_side="Comment.id",
        lazy="noload",
    )

    __repr__ = generate_repr("id", "post_id", "status")
