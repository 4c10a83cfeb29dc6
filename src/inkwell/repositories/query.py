"""Filter predicates and the builder that composes them.

Repository filters are expressed as a small tagged variant tree::

    Predicate = Eq | Range | Regex | Substring | In | Contains | Exists | And | Or

Callers may also pass a plain mapping of ``{field: value}`` which is read as
an AND of equalities. :func:`build_filter` folds the base filter, the
not-deleted predicate, date-range normalization, free-text search and ad-hoc
search criteria into a single predicate. Nothing outside :func:`lower`
inspects a predicate; :func:`lower` turns it into a SQLAlchemy expression
at the storage boundary.
"""

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Optional, Union

from sqlalchemy import Enum, String, and_, cast, column, false, inspect, or_, true
from sqlalchemy.sql.elements import ColumnElement

# ============================================================================
# PREDICATE VARIANTS
# ============================================================================


@dataclass(frozen=True)
class Eq:
    """``field == value``; ``None`` matches NULL."""

    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    """Bounded comparison. Unset bounds are ignored."""

    field: str
    gte: Any = None
    gt: Any = None
    lte: Any = None
    lt: Any = None


@dataclass(frozen=True)
class Regex:
    """Regular expression match, case-insensitive by default."""

    field: str
    pattern: str
    ignore_case: bool = True


@dataclass(frozen=True)
class Substring:
    """Case-insensitive literal substring match (used by free-text search)."""

    field: str
    term: str


@dataclass(frozen=True)
class In:
    """Set membership."""

    field: str
    values: tuple[Any, ...]

    def __init__(self, field: str, values: Sequence[Any]) -> None:
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Contains:
    """A JSON list column holds ``value`` as one of its elements."""

    field: str
    value: Any


@dataclass(frozen=True)
class Exists:
    """The field is set (``exists=True``) or NULL (``exists=False``)."""

    field: str
    exists: bool = True


@dataclass(frozen=True)
class And:
    items: tuple["Predicate", ...]

    def __init__(self, *items: "Predicate") -> None:
        object.__setattr__(self, "items", tuple(items))


@dataclass(frozen=True)
class Or:
    items: tuple["Predicate", ...]

    def __init__(self, *items: "Predicate") -> None:
        object.__setattr__(self, "items", tuple(items))


Predicate = Union[Eq, Range, Regex, Substring, In, Contains, Exists, And, Or]
FilterInput = Union[Mapping[str, Any], Predicate, None]

_PREDICATE_TYPES = (Eq, Range, Regex, Substring, In, Contains, Exists, And, Or)

DELETED_FIELD = "deleted"


def not_deleted() -> Predicate:
    return Eq(DELETED_FIELD, False)


# ============================================================================
# BUILDER
# ============================================================================


def parse_datetime(value: Any) -> datetime:
    """Coerce an ISO-8601 string, date or datetime into a datetime.

    Raises:
        ValueError: If a string is not valid ISO-8601
        TypeError: If the value has an unsupported type
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"Cannot interpret {value!r} as a datetime")


def _date_range(field: str, bounds: Mapping[str, Any]) -> Optional[Range]:
    """Inclusive lower bound from ``gte``, exclusive upper bound from ``lte``."""
    gte = bounds.get("gte")
    lte = bounds.get("lte")
    if gte is None and lte is None:
        return None
    return Range(
        field,
        gte=parse_datetime(gte) if gte is not None else None,
        lt=parse_datetime(lte) if lte is not None else None,
    )


def from_mapping(filters: Mapping[str, Any], date_field: str = "created_at") -> list[Predicate]:
    """Read a loose ``{field: value}`` mapping as a list of predicates.

    Values that already are predicates are kept as they are. A mapping value
    on ``date_field`` with ``gte``/``lte`` keys becomes a date range.
    """
    predicates: list[Predicate] = []
    for field, value in filters.items():
        if isinstance(value, _PREDICATE_TYPES):
            predicates.append(value)
        elif field == date_field and isinstance(value, Mapping):
            date_range = _date_range(field, value)
            if date_range is not None:
                predicates.append(date_range)
        else:
            predicates.append(Eq(field, value))
    return predicates


def _search(fields: Sequence[str], term: str) -> Predicate:
    return Or(*(Substring(field, term) for field in fields))


def build_filter(
    filters: FilterInput = None,
    *,
    include_deleted: bool,
    date_field: str = "created_at",
    search_key: Optional[str] = None,
    search_fields: Sequence[str] = (),
    search_criteria: Sequence[tuple[str, str]] = (),
) -> Predicate:
    """Compose the final predicate for a repository read.

    Args:
        filters: Base filter, either a mapping or a predicate
        include_deleted: When False the not-deleted predicate is ANDed in
        date_field: Timestamp field that accepts ``{"gte": ..., "lte": ...}`` bounds
        search_key: Free-text term matched against ``search_fields``
        search_fields: Fields searched with ``search_key`` (OR-combined)
        search_criteria: Extra ``(field, term)`` pairs, OR-combined among themselves

    Returns:
        A single predicate; ``And()`` when there is nothing to filter on
    """
    parts: list[Predicate] = []

    if isinstance(filters, Mapping):
        parts.extend(from_mapping(filters, date_field))
    elif filters is not None:
        parts.append(filters)

    if not include_deleted:
        parts.append(not_deleted())

    if search_key and search_fields:
        parts.append(_search(search_fields, search_key))

    if search_criteria:
        parts.append(Or(*(Substring(field, term) for field, term in search_criteria)))

    if len(parts) == 1:
        return parts[0]
    return And(*parts)


# ============================================================================
# LOWERING
# ============================================================================

Resolver = Callable[[str], ColumnElement[Any]]


def column_resolver(entity: Any, aliases: Optional[Mapping[str, Any]] = None) -> Resolver:
    """Map field names onto columns of ``entity``.

    ``entity`` may be a mapped class or an ``aliased()`` construct. Dotted
    names (``author.email``) resolve against the alias registered for the
    relationship. Names that are not mapped columns are passed through as a
    bare column reference so the database reports them.
    """
    column_keys = set(inspect(entity).mapper.column_attrs.keys())
    aliases = aliases or {}

    def resolve(field: str) -> ColumnElement[Any]:
        if "." in field:
            relation, _, attr = field.partition(".")
            target = aliases.get(relation)
            if target is not None and attr in inspect(target).mapper.column_attrs.keys():
                return getattr(target, attr)
            return column(field)
        if field in column_keys:
            return getattr(entity, field)
        return column(field)

    return resolve


def _as_text(col: ColumnElement[Any]) -> ColumnElement[Any]:
    if isinstance(col.type, String) and not isinstance(col.type, Enum):
        return col
    return cast(col, String)


def _escape_like(value: str) -> str:
    return value.replace("/", "//").replace("%", "/%").replace("_", "/_")


def lower(predicate: Predicate, resolve: Resolver) -> ColumnElement[bool]:
    """Translate a predicate tree into a SQLAlchemy boolean expression."""
    if isinstance(predicate, Eq):
        col = resolve(predicate.field)
        if predicate.value is None:
            return col.is_(None)
        return col == predicate.value

    if isinstance(predicate, Range):
        col = resolve(predicate.field)
        clauses = []
        if predicate.gte is not None:
            clauses.append(col >= predicate.gte)
        if predicate.gt is not None:
            clauses.append(col > predicate.gt)
        if predicate.lte is not None:
            clauses.append(col <= predicate.lte)
        if predicate.lt is not None:
            clauses.append(col < predicate.lt)
        return and_(true(), *clauses)

    if isinstance(predicate, Regex):
        # (?i) is understood by both Python's re (SQLite) and PostgreSQL AREs
        pattern = f"(?i){predicate.pattern}" if predicate.ignore_case else predicate.pattern
        return _as_text(resolve(predicate.field)).regexp_match(pattern)

    if isinstance(predicate, Substring):
        return _as_text(resolve(predicate.field)).icontains(predicate.term, autoescape=True)

    if isinstance(predicate, In):
        return resolve(predicate.field).in_(predicate.values)

    if isinstance(predicate, Contains):
        needle = _escape_like(json.dumps(predicate.value))
        return cast(resolve(predicate.field), String).like(f"%{needle}%", escape="/")

    if isinstance(predicate, Exists):
        col = resolve(predicate.field)
        return col.is_not(None) if predicate.exists else col.is_(None)

    if isinstance(predicate, And):
        return and_(true(), *(lower(item, resolve) for item in predicate.items))

    if isinstance(predicate, Or):
        return or_(false(), *(lower(item, resolve) for item in predicate.items))

    raise TypeError(f"Unsupported predicate: {predicate!r}")
