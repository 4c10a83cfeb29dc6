"""Domain services: business rules on top of the repositories."""

from inkwell.services.auth import AuthService
from inkwell.services.comment import CommentService
from inkwell.services.like import LikeService
from inkwell.services.post import PostService, generate_slug, slugify
from inkwell.services.session import SessionService
from inkwell.services.storage import StorageService
from inkwell.services.user import UserService

__all__ = [
    "AuthService",
    "CommentService",
    "LikeService",
    "PostService",
    "SessionService",
    "StorageService",
    "UserService",
    "generate_slug",
    "slugify",
]
