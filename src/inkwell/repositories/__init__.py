"""Repository layer for database operations.

Repositories encapsulate database access behind a small API. Every entity
repository composes ``BaseRepository[Model]`` and adds its own lookups.
"""

from inkwell.repositories.base import BaseRepository
from inkwell.repositories.comment import CommentRepository
from inkwell.repositories.like import LikeRepository
from inkwell.repositories.pagination import (
    GroupedCount,
    Join,
    ListOptions,
    PaginatedResult,
    PaginationMeta,
    PaginationQuery,
    Relation,
    TotalCount,
)
from inkwell.repositories.post import PostRepository
from inkwell.repositories.session import SessionRepository
from inkwell.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "CommentRepository",
    "GroupedCount",
    "Join",
    "LikeRepository",
    "ListOptions",
    "PaginatedResult",
    "PaginationMeta",
    "PaginationQuery",
    "PostRepository",
    "Relation",
    "SessionRepository",
    "TotalCount",
    "UserRepository",
]
