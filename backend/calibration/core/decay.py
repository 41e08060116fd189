"""Exponential half-life decay for feedback magnitudes.

Decay is continuous in time and composable: decaying across [t0, t1] and then
[t1, t2] equals decaying once across [t0, t2] (up to float rounding). Replaying
a feedback history event by event therefore lands on the same scores as the
incremental write path.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


UTC = timezone.utc

DEFAULT_HALF_LIFE_DAYS = 45.0
SECONDS_PER_DAY = 24 * 60 * 60


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def elapsed_days(since: datetime, until: datetime) -> float:
    """Days between two instants, clamped at 0 for clock skew."""
    seconds = (ensure_utc(until) - ensure_utc(since)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


def decay_factor(days: float, *, half_life_days: float = DEFAULT_HALF_LIFE_DAYS) -> float:
    if half_life_days <= 0:
        raise ValueError("half_life_days must be > 0")
    if days <= 0:
        return 1.0
    return 0.5 ** (days / half_life_days)


def apply_decay(
    pos: float,
    neg: float,
    last_updated_at: Optional[datetime],
    now: datetime,
    *,
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
) -> tuple[float, float]:
    """Decay (pos, neg) from last_updated_at forward to now.

    A fresh state (no last_updated_at) is returned unchanged.
    """
    if last_updated_at is None:
        return pos, neg

    factor = decay_factor(elapsed_days(last_updated_at, now), half_life_days=half_life_days)
    if factor == 1.0:
        return pos, neg
    return pos * factor, neg * factor
