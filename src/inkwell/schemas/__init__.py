"""Request and response schemas for the API."""

from inkwell.schemas.common import (
    BaseSchema,
    ErrorDetail,
    MessageResponse,
    PaginatedResponse,
    error_envelope,
    success_envelope,
)
from inkwell.schemas.post import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from inkwell.schemas.storage import (
    DeleteFilesRequest,
    PresignedUrlRequest,
    PresignedUrlResponse,
    PublicUploadResponse,
)
from inkwell.schemas.user import (
    AuthorSummary,
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "AuthResponse",
    "AuthorSummary",
    "BaseSchema",
    "ChangePasswordRequest",
    "CommentCreate",
    "CommentResponse",
    "CommentUpdate",
    "DeleteFilesRequest",
    "ErrorDetail",
    "ForgotPasswordRequest",
    "ForgotPasswordResponse",
    "LoginRequest",
    "MessageResponse",
    "PaginatedResponse",
    "PostCreate",
    "PostResponse",
    "PostUpdate",
    "PresignedUrlRequest",
    "PresignedUrlResponse",
    "PublicUploadResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "error_envelope",
    "success_envelope",
]
