"""Post and comment schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from inkwell.models.comment import CommentStatus
from inkwell.models.post import PostStatus
from inkwell.schemas.common import BaseSchema, PartialUpdate
from inkwell.schemas.user import AuthorSummary


class PostCreate(BaseSchema):
    content: str = Field(min_length=1)
    slug: Optional[str] = Field(default=None, max_length=255)
    featured_image: Optional[str] = Field(default=None, max_length=500)
    status: PostStatus = PostStatus.DRAFT
    tags: list[str] = Field(default_factory=list)
    allow_comments: bool = True
    meta_description: Optional[str] = Field(default=None, max_length=300)
    meta_keywords: list[str] = Field(default_factory=list)


class PostUpdate(PartialUpdate):
    """Partial post update.

    Only fields present in the request are applied; sending
    ``featuredImage: null`` explicitly clears the image. The meta description
    may be cleared the same way; other fields reject ``null``.
    """

    clearable_fields = frozenset({"featured_image", "meta_description"})

    content: Optional[str] = Field(default=None, min_length=1)
    featured_image: Optional[str] = Field(default=None, max_length=500)
    status: Optional[PostStatus] = None
    tags: Optional[list[str]] = None
    allow_comments: Optional[bool] = None
    meta_description: Optional[str] = Field(default=None, max_length=300)
    meta_keywords: Optional[list[str]] = None


class PostResponse(BaseSchema):
    id: uuid.UUID
    slug: str
    content: str
    featured_image: Optional[str] = None
    author_id: uuid.UUID
    author: Optional[AuthorSummary] = None
    status: PostStatus
    published_at: Optional[datetime] = None
    tags: list[str]
    allow_comments: bool
    meta_description: Optional[str] = None
    meta_keywords: list[str]
    view_count: int
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: datetime


class PostRef(BaseSchema):
    id: uuid.UUID
    slug: Optional[str] = None


class ParentCommentRef(BaseSchema):
    id: uuid.UUID
    content: Optional[str] = None
    author_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None


class CommentCreate(BaseSchema):
    content: str = Field(min_length=1, max_length=5000)
    post_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None


class CommentUpdate(BaseSchema):
    content: str = Field(min_length=1, max_length=5000)


class CommentAuthor(BaseSchema):
    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None


class CommentResponse(BaseSchema):
    id: uuid.UUID
    content: str
    author_id: uuid.UUID
    author: Optional[CommentAuthor] = None
    post_id: uuid.UUID
    post: Optional[PostRef] = None
    parent_id: Optional[uuid.UUID] = None
    parent: Optional[ParentCommentRef] = None
    status: CommentStatus
    like_count: int
    reply_count: int
    created_at: datetime
    updated_at: datetime


class StatusCount(BaseSchema):
    status: str
    count: int
