"""Account trust policy math.

Gradual throttling per account from decayed feedback magnitudes:
- exponential decay of pos/neg (see decay.py)
- Beta(1,1) Laplace-smoothed score
- smoothstep mapping of score to a fetch probability with an exploration floor
- explicit operator modes override the score entirely

Everything here is pure: the projection decays to `now` for display and
inclusion decisions without producing anything to persist.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime

from calibration.core.decay import DEFAULT_HALF_LIFE_DAYS, apply_decay
from calibration.core.feedback_delta import DEFAULT_FEEDBACK_INCREMENT, apply_feedback_delta
from calibration.core.types import (
    AccountPolicyDTO,
    AccountPolicyView,
    NextEffect,
    PolicyMode,
    PolicyState,
)


# Tunables (defaults; overridable via PolicyParams / settings)
MIN_SAMPLE_SIZE = 5.0
EXPLORATION_FLOOR = 0.15
AUTO_EXCLUDE_MARGIN = 3.0
REDUCED_STATE_THRESHOLD = 0.9

SMOOTHSTEP_LOW = 0.35
SMOOTHSTEP_HIGH = 0.65


@dataclass(frozen=True, slots=True)
class PolicyParams:
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS
    feedback_increment: float = DEFAULT_FEEDBACK_INCREMENT
    min_sample_size: float = MIN_SAMPLE_SIZE
    exploration_floor: float = EXPLORATION_FLOOR
    auto_exclude_margin: float = AUTO_EXCLUDE_MARGIN


DEFAULT_PARAMS = PolicyParams()


def compute_score(pos: float, neg: float) -> float:
    """Laplace smoothing with a Beta(1,1) prior: (pos + 1) / (pos + neg + 2)."""
    return (pos + 1.0) / (pos + neg + 2.0)


def get_sample_size(pos: float, neg: float) -> float:
    return pos + neg


def smoothstep(edge0: float, edge1: float, x: float) -> float:
    t = max(0.0, min(1.0, (x - edge0) / (edge1 - edge0)))
    return t * t * (3.0 - 2.0 * t)


def compute_throttle(score: float, sample: float, params: PolicyParams = DEFAULT_PARAMS) -> float:
    """Fetch probability in [exploration_floor, 1.0].

    Below the minimum sample size there is not enough evidence: always fetch.
    """
    if sample < params.min_sample_size:
        return 1.0
    t = smoothstep(SMOOTHSTEP_LOW, SMOOTHSTEP_HIGH, score)
    return params.exploration_floor + t * (1.0 - params.exploration_floor)


def resolve_state(mode: PolicyMode, throttle: float) -> PolicyState:
    if mode == PolicyMode.MUTE:
        return PolicyState.MUTED
    if mode == PolicyMode.ALWAYS:
        return PolicyState.NORMAL
    if throttle < REDUCED_STATE_THRESHOLD:
        return PolicyState.REDUCED
    return PolicyState.NORMAL


def resolve_inclusion(mode: PolicyMode, pos: float, neg: float, params: PolicyParams = DEFAULT_PARAMS) -> bool:
    """Effective include/exclude decision for a candidate from this account."""
    if mode == PolicyMode.MUTE:
        return False
    if mode == PolicyMode.ALWAYS:
        return True
    return (neg - pos) <= params.auto_exclude_margin


def _next_effect(pos: float, neg: float, action: str, params: PolicyParams) -> NextEffect:
    p, n = apply_feedback_delta(pos, neg, action, increment=params.feedback_increment)
    score = compute_score(p, n)
    return NextEffect(score=score, throttle=compute_throttle(score, get_sample_size(p, n), params))


def compute_policy_view(
    row: AccountPolicyDTO, now: datetime, params: PolicyParams = DEFAULT_PARAMS
) -> AccountPolicyView:
    """Project a stored policy forward to `now` without mutating it."""
    pos, neg = apply_decay(
        row.pos_score,
        row.neg_score,
        row.last_updated_at,
        now,
        half_life_days=params.half_life_days,
    )
    score = compute_score(pos, neg)
    sample = get_sample_size(pos, neg)
    throttle = compute_throttle(score, sample, params)

    return AccountPolicyView(
        handle=row.handle,
        mode=row.mode,
        pos=pos,
        neg=neg,
        score=score,
        sample=sample,
        throttle=throttle,
        state=resolve_state(row.mode, throttle),
        included=resolve_inclusion(row.mode, pos, neg, params),
        next_like=_next_effect(pos, neg, "like", params),
        next_dislike=_next_effect(pos, neg, "dislike", params),
    )


def deterministic_sample(key: str, threshold: float) -> bool:
    """Stable pseudo-random draw: True if sha256(key) falls below threshold.

    The same key (e.g. "source|handle|window_end") always yields the same answer.
    """
    if threshold >= 1.0:
        return True
    if threshold <= 0.0:
        return False
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    value = int(digest[:8], 16) / 0xFFFFFFFF
    return value < threshold
