"""Canonical domain types.

Repositories convert ORM rows into these at the storage boundary; services and
policy math only ever see these.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from calibration.core.errors import InvalidPolicyModeError


class PolicyMode(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    MUTE = "mute"


class PolicyState(str, Enum):
    NORMAL = "normal"
    REDUCED = "reduced"
    MUTED = "muted"


def parse_policy_mode(value: PolicyMode | str) -> PolicyMode:
    if isinstance(value, PolicyMode):
        return value
    try:
        return PolicyMode(value)
    except ValueError as e:
        raise InvalidPolicyModeError(value) from e


@dataclass(frozen=True, slots=True)
class SourceCalibrationDTO:
    owner_id: str
    source_id: str
    items_shown: int
    items_liked: int
    items_disliked: int
    rolling_hit_rate: Optional[float]
    calibration_offset: float
    window_start: Optional[datetime]
    updated_at: Optional[datetime]
    version: int = 0

    @property
    def feedback_total(self) -> int:
        return self.items_liked + self.items_disliked


@dataclass(frozen=True, slots=True)
class AccountPolicyDTO:
    id: uuid.UUID
    source_id: str
    handle: str
    mode: PolicyMode
    pos_score: float
    neg_score: float
    last_feedback_at: Optional[datetime]
    last_updated_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    version: int = 0


@dataclass(frozen=True, slots=True)
class NextEffect:
    score: float
    throttle: float


@dataclass(frozen=True, slots=True)
class AccountPolicyView:
    """Read-time projection of a policy row (never persisted)."""

    handle: str
    mode: PolicyMode
    pos: float
    neg: float
    score: float  # Laplace-smoothed, 0-1, higher = better
    sample: float  # pos + neg (decayed)
    throttle: float  # fetch probability, exploration floor .. 1.0
    state: PolicyState
    included: bool
    next_like: NextEffect
    next_dislike: NextEffect


@dataclass(frozen=True, slots=True)
class HistoricalFeedback:
    """One entry of the external feedback log, as needed for replay."""

    action: str
    occurred_at: datetime
