"""Pagination request/result types and list options for repository reads."""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inkwell.core.config import settings

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]

DEFAULT_PAGE = 1
DEFAULT_LIMIT = settings.pagination_default_limit
MAX_LIMIT = settings.pagination_max_limit


class PaginationQuery(BaseModel):
    """Pagination request as received from the HTTP layer.

    Every field is optional. Setting any of them switches ``find_all`` into
    paginated mode; unset values fall back to page 1, 20 per page, newest
    first. Bounds are validated here, at the boundary, and not re-checked by
    the repository.
    """

    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_LIMIT)
    search_key: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[SortOrder] = None

    def is_requested(self) -> bool:
        return any(
            value is not None
            for value in (self.page, self.limit, self.search_key, self.sort_by, self.sort_order)
        )

    @property
    def resolved_page(self) -> int:
        return self.page or DEFAULT_PAGE

    @property
    def resolved_limit(self) -> int:
        return self.limit or DEFAULT_LIMIT

    @property
    def resolved_sort_order(self) -> SortOrder:
        return self.sort_order or "desc"

    @property
    def skip(self) -> int:
        return (self.resolved_page - 1) * self.resolved_limit


class PaginationMeta(BaseModel):
    """Page metadata; serializes with camelCase keys (``totalPages``...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


@dataclass
class PaginatedResult(Generic[T]):
    """One page of entities plus its metadata."""

    data: list[T]
    pagination: PaginationMeta

    def to_dict(self) -> dict:
        return {"data": self.data, "pagination": self.pagination.model_dump(by_alias=True)}


@dataclass(frozen=True)
class Join:
    """Relation to expand on read.

    Attributes:
        path: Name of the relationship declared on the model; the expanded
            entity is exposed under the same attribute
        fields: Columns to load from the related entity (its id is always
            loaded); ``None`` loads every column
    """

    path: str
    fields: Optional[tuple[str, ...]] = None

    def __init__(self, path: str, fields: Optional[Sequence[str]] = None) -> None:
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "fields", tuple(fields) if fields is not None else None)


@dataclass(frozen=True)
class Relation:
    """Which relations a read should expand: none, the repository default, or an explicit set."""

    mode: Literal["none", "default", "explicit"] = "none"
    joins: tuple[Join, ...] = ()

    @classmethod
    def none(cls) -> "Relation":
        return cls("none")

    @classmethod
    def default(cls) -> "Relation":
        return cls("default")

    @classmethod
    def explicit(cls, *joins: Join) -> "Relation":
        return cls("explicit", tuple(joins))

    def resolve(self, default_joins: Sequence[Join]) -> tuple[Join, ...]:
        if self.mode == "default":
            return tuple(default_joins)
        if self.mode == "explicit":
            return self.joins
        return ()


@dataclass
class ListOptions:
    """Options for ``BaseRepository.find_all``.

    Attributes:
        search_fields: Fields matched against ``PaginationQuery.search_key``
        sort_fields: Allow-list for ``PaginationQuery.sort_by``
        default_sort_field: Sort field used when ``sort_by`` is missing or not allowed
        search_criteria: Extra ``(field, term)`` substring matches, OR-combined
        relation: Relations to expand
        select: Columns to load on the main entity (simple mode)
        order: ``{field: "asc" | "desc"}`` ordering (simple mode)
        date_field: Field accepting ``{"gte", "lte"}`` bounds in a mapping filter
    """

    search_fields: Sequence[str] = ()
    sort_fields: Sequence[str] = ()
    default_sort_field: str = "created_at"
    search_criteria: Sequence[tuple[str, str]] = ()
    relation: Relation = field(default_factory=Relation.none)
    select: Optional[Sequence[str]] = None
    order: Optional[Mapping[str, SortOrder]] = None
    date_field: str = "created_at"

    def resolve_sort_field(self, sort_by: Optional[str]) -> str:
        if sort_by and sort_by in self.sort_fields:
            return sort_by
        return self.default_sort_field


@dataclass(frozen=True)
class TotalCount:
    total_count: int


@dataclass(frozen=True)
class GroupedCount:
    value: object
    count: int


UNCATEGORIZED = "uncategorized"
