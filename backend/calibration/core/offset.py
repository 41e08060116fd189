"""Source calibration offset math.

The offset is linear in the hit rate, symmetric around the expected rate
(neutral at 0.5) and hard-bounded by max_offset:

    hit_rate=0.8 -> +0.12   (max_offset=0.2)
    hit_rate=0.5 ->  0.0
    hit_rate=0.3 -> -0.08
"""

from __future__ import annotations

from typing import Optional


DEFAULT_MIN_SAMPLES = 10
DEFAULT_MAX_OFFSET = 0.2
DEFAULT_WINDOW_DAYS = 30
EXPECTED_HIT_RATE = 0.5

# Full [-max_offset, +max_offset] range is reached when |hit_rate - expected| == 0.5.
_SCALE = 2.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def compute_hit_rate(liked: int, disliked: int) -> Optional[float]:
    total = liked + disliked
    if total <= 0:
        return None
    return liked / total


def compute_calibration_offset(
    hit_rate: float,
    *,
    expected_rate: float = EXPECTED_HIT_RATE,
    max_offset: float = DEFAULT_MAX_OFFSET,
) -> float:
    """Map a hit rate in [0, 1] to an additive score offset in [-max_offset, max_offset]."""
    delta = hit_rate - expected_rate
    return clamp(delta * _SCALE * max_offset, -max_offset, max_offset)


def calibrate_score(ai_score: float, offset: float) -> float:
    """Apply an offset to a relevance score, keeping it in [0, 1]."""
    return clamp(ai_score + offset, 0.0, 1.0)
