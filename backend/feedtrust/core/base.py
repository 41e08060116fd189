"""SQLAlchemy declarative base and shared mixins.

- UUID primary keys for rows that are addressed from outside (admin surface).
- Explicit UTC, timezone-aware timestamps everywhere.
- Mutable calibration rows carry an integer version for optimistic writes.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from sqlalchemy import DateTime, Integer, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for feedtrust ORM models."""


class UUIDPrimaryKeyMixin:
    """UUID primary key; the application and the database can both generate it."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )


class CreatedAtMixin:
    """Row creation time, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class UpdatedAtMixin:
    """Last modification time (timestamptz).

    UPDATE statements that do not set updated_at fall back to now() via onupdate.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class VersionedMixin:
    """Optimistic concurrency token, bumped on every state-changing write."""

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
