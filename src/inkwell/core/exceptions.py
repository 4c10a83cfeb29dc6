"""Service-layer exceptions mapped to HTTP status codes.

Repositories never raise these: absence comes back as ``None`` and storage
errors propagate as ``SQLAlchemyError``. Services escalate into this
hierarchy, and the HTTP shell turns it into the error envelope.

    AppError (500)
       ├── BadRequestError (400)
       ├── UnauthorizedError (401)
       ├── ForbiddenError (403)
       ├── NotFoundError (404)
       └── ConflictError (409)
"""

from typing import Any, Optional


class AppError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error context (e.g. validation errors)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "Internal server error",
        details: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self.message = message
        self.details = details
        super().__init__(self.message)


class BadRequestError(AppError):
    """Malformed input or a violated business rule (400)."""

    status_code = 400

    def __init__(self, message: str = "Bad request", details: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message, details)


class UnauthorizedError(AppError):
    """Missing or invalid credentials, expired token or session (401)."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(AppError):
    """Authenticated but not allowed (403)."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    """Requested entity does not exist or is soft-deleted (404)."""

    status_code = 404

    def __init__(self, resource: str = "Resource", message: Optional[str] = None) -> None:
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class ConflictError(AppError):
    """Entity already exists (409)."""

    status_code = 409

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message)
