"""Like model for posts and comments."""

import uuid
from enum import Enum

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.models.base import Base, Entity, generate_repr


class LikeType(str, Enum):
    """Kind of entity a like points at."""

    POST = "POST"
    COMMENT = "COMMENT"


def like_unique_key(user_id: uuid.UUID | str, target_id: uuid.UUID | str, like_type: LikeType) -> str:
    """One like per user, target and type."""
    return f"{user_id}_{target_id}_{LikeType(like_type).value}"


class Like(Base, Entity):
    """A user's like of a post or comment.

    ``target_id`` is polymorphic (post or comment id) so it carries no
    foreign key; ``unique_key`` enforces one like per user and target.
    """

    __tablename__ = "likes"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    like_type: Mapped[LikeType] = mapped_column(
        SQLEnum(LikeType, native_enum=False, length=20),
        nullable=False,
    )
    target_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    unique_key: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    __table_args__ = (Index("idx_likes_target", "target_id", "like_type"),)

    __repr__ = generate_repr("id", "user_id", "like_type", "target_id")
