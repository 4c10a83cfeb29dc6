"""Shared schemas and the response envelopes.

Every response body is wrapped:

    success: {"error": false, "message": "OK", "data": ...}
    failure: {"error": true, "message": "Not Found",
              "data": {"message", "statusCode", "timestamp", "path", "errors"?}}
"""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, ClassVar, Generic, Optional, Self, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from inkwell.repositories.pagination import PaginatedResult, PaginationMeta

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base for API schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PartialUpdate(BaseSchema):
    """Base for PATCH-style bodies where only the sent fields are applied.

    Explicit ``null`` is accepted only for fields listed in
    ``clearable_fields``; every other column is NOT NULL.
    """

    clearable_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_fields(self) -> Self:
        nulled = sorted(
            type(self).model_fields[name].alias or name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.clearable_fields
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class PaginatedResponse(BaseSchema, Generic[T]):
    """``{"data": [...], "pagination": {...}}``"""

    data: list[T]
    pagination: PaginationMeta

    @classmethod
    def from_result(cls, result: PaginatedResult[Any], item_schema: type[BaseModel]) -> "PaginatedResponse[Any]":
        return cls(
            data=[item_schema.model_validate(item) for item in result.data],
            pagination=result.pagination,
        )


class MessageResponse(BaseSchema):
    message: str
    timestamp: Optional[str] = None


class ErrorDetail(BaseSchema):
    """One field-level validation failure."""

    field: str
    message: str
    type: Optional[str] = None


def iso_now() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Status"


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def success_envelope(data: Any = None, status_code: int = 200) -> dict[str, Any]:
    """Wrap a successful response body."""
    return {"error": False, "message": status_phrase(status_code), "data": _dump(data)}


def error_envelope(
    status_code: int,
    message: str,
    path: str,
    errors: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """Build the error response body."""
    data: dict[str, Any] = {
        "message": message,
        "statusCode": status_code,
        "timestamp": iso_now(),
        "path": path,
    }
    if errors:
        data["errors"] = errors
    return {"error": True, "message": status_phrase(status_code), "data": data}
