"""Refresh-token session model."""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.models.base import Base, Entity, UTCDateTime, generate_repr


class Session(Base, Entity):
    """A login session identified by its refresh token."""

    __tablename__ = "sessions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    refresh_token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __repr__ = generate_repr("id", "user_id", "expires_at")
