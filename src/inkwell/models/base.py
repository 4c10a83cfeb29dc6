"""Base model classes and mixins for SQLAlchemy models."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, TypeDecorator
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator[datetime]):
    """DateTime that always hands back timezone-aware UTC values.

    SQLite has no timezone storage, so naive values read back are UTC by
    construction. Naive values bound as parameters are treated as UTC too.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect: Dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """Base class for all database models."""

    type_annotation_map = {
        datetime: UTCDateTime(),
    }


class UUIDMixin:
    """Mixin that adds a UUID primary key."""

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            primary_key=True,
            default=uuid.uuid4,
        )


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns.

    Both are stamped client-side so a flushed entity carries its timestamps
    without a round trip. Repository updates stamp ``updated_at`` explicitly.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            UTCDateTime(),
            nullable=False,
            default=utcnow,
            index=True,
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            UTCDateTime(),
            nullable=False,
            default=utcnow,
            onupdate=utcnow,
        )


class SoftDeleteMixin:
    """Mixin that adds a soft delete flag plus who/when it was deleted.

    Rows with ``deleted = True`` are hidden from every repository read unless
    the caller passes ``include_deleted=True``.
    """

    @declared_attr
    def deleted(cls) -> Mapped[bool]:
        return mapped_column(
            Boolean,
            nullable=False,
            default=False,
            index=True,
        )

    @declared_attr
    def deleted_at(cls) -> Mapped[datetime | None]:
        return mapped_column(
            UTCDateTime(),
            nullable=True,
            default=None,
        )

    @declared_attr
    def deleted_by(cls) -> Mapped[uuid.UUID | None]:
        return mapped_column(nullable=True, default=None)


class AuditMixin:
    """Mixin that records which user created and last updated a row."""

    @declared_attr
    def created_by(cls) -> Mapped[uuid.UUID | None]:
        return mapped_column(nullable=True, default=None)

    @declared_attr
    def updated_by(cls) -> Mapped[uuid.UUID | None]:
        return mapped_column(nullable=True, default=None)


class Entity(UUIDMixin, TimestampMixin, SoftDeleteMixin, AuditMixin):
    """Common columns shared by every persisted entity."""


def generate_repr(*attrs: str) -> Any:
    """Generate a __repr__ method for model classes.

    Example:
        __repr__ = generate_repr("id", "email")
    """

    def __repr__(self: Any) -> str:
        class_name = self.__class__.__name__
        attr_strs = [f"{attr}={getattr(self, attr)!r}" for attr in attrs]
        return f"{class_name}({', '.join(attr_strs)})"

    return __repr__
