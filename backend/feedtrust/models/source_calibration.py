"""SourceCalibration model.

Per-(owner, source) feedback statistics used to nudge relevance scores toward
the owner's observed satisfaction with a source.

- Counters accumulate inside a rolling window and reset when it goes stale.
- rolling_hit_rate stays NULL until the window first reaches min_samples.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from feedtrust.core.base import Base, UpdatedAtMixin, VersionedMixin


class SourceCalibration(VersionedMixin, UpdatedAtMixin, Base):
    """Rolling like/dislike statistics and calibration offset for one source."""

    __tablename__ = "source_calibrations"
    __table_args__ = (
        CheckConstraint("items_shown >= 0", name="source_calibrations_items_shown_nonneg"),
        CheckConstraint("items_liked >= 0", name="source_calibrations_items_liked_nonneg"),
        CheckConstraint("items_disliked >= 0", name="source_calibrations_items_disliked_nonneg"),
        Index("source_calibrations_owner_idx", "owner_id"),
    )

    owner_id: Mapped[str] = mapped_column(String, primary_key=True)
    source_id: Mapped[str] = mapped_column(String, primary_key=True)

    items_shown: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    items_liked: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    items_disliked: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    rolling_hit_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    calibration_offset: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    window_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
