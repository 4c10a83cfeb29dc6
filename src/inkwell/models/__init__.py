"""Database models."""

from inkwell.models.base import Base, Entity, utcnow
from inkwell.models.comment import Comment, CommentStatus
from inkwell.models.like import Like, LikeType, like_unique_key
from inkwell.models.post import Post, PostStatus
from inkwell.models.session import Session
from inkwell.models.user import User, UserRole

__all__ = [
    "Base",
    "Entity",
    "utcnow",
    "Comment",
    "CommentStatus",
    "Like",
    "LikeType",
    "like_unique_key",
    "Post",
    "PostStatus",
    "Session",
    "User",
    "UserRole",
]
