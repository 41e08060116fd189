"""Calibration settings (environment driven).

All tunables are plain env vars (optionally from .env). Invalid values fail
loudly at startup rather than silently falling back to defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from calibration.core.decay import DEFAULT_HALF_LIFE_DAYS
from calibration.core.feedback_delta import DEFAULT_FEEDBACK_INCREMENT
from calibration.core.offset import DEFAULT_MAX_OFFSET, DEFAULT_MIN_SAMPLES, DEFAULT_WINDOW_DAYS
from calibration.core.policy_math import (
    AUTO_EXCLUDE_MARGIN,
    EXPLORATION_FLOOR,
    MIN_SAMPLE_SIZE,
    PolicyParams,
)
from feedtrust.core.env import load_env_if_present


DEFAULT_MAX_WRITE_RETRIES = 5


@dataclass(frozen=True, slots=True)
class CalibrationSettings:
    # Source calibration
    min_samples: int = DEFAULT_MIN_SAMPLES
    max_offset: float = DEFAULT_MAX_OFFSET
    window_days: int = DEFAULT_WINDOW_DAYS

    # Account trust policy
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS
    feedback_increment: float = DEFAULT_FEEDBACK_INCREMENT
    min_sample_size: float = MIN_SAMPLE_SIZE
    exploration_floor: float = EXPLORATION_FLOOR
    auto_exclude_margin: float = AUTO_EXCLUDE_MARGIN

    # Optimistic write retries per operation
    max_write_retries: int = DEFAULT_MAX_WRITE_RETRIES

    def policy_params(self) -> PolicyParams:
        return PolicyParams(
            half_life_days=self.half_life_days,
            feedback_increment=self.feedback_increment,
            min_sample_size=self.min_sample_size,
            exploration_floor=self.exploration_floor,
            auto_exclude_margin=self.auto_exclude_margin,
        )


def _env_int(name: str, default: int, *, minimum: int) -> int:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        n = int(v)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name}; must be integer.") from e
    if n < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}.")
    return n


def _env_float(name: str, default: float, *, minimum: float, maximum: float | None = None) -> float:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        x = float(v)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name}; must be a number.") from e
    if x != x or x < minimum or (maximum is not None and x > maximum):
        bounds = f"[{minimum}, {maximum}]" if maximum is not None else f">= {minimum}"
        raise RuntimeError(f"{name} must be {bounds}.")
    return x


def load_settings() -> CalibrationSettings:
    load_env_if_present()
    half_life = _env_float("FT_DECAY_HALF_LIFE_DAYS", DEFAULT_HALF_LIFE_DAYS, minimum=0.0)
    if half_life <= 0:
        raise RuntimeError("FT_DECAY_HALF_LIFE_DAYS must be > 0.")
    increment = _env_float("FT_FEEDBACK_INCREMENT", DEFAULT_FEEDBACK_INCREMENT, minimum=0.0)
    if increment <= 0:
        raise RuntimeError("FT_FEEDBACK_INCREMENT must be > 0.")

    return CalibrationSettings(
        min_samples=_env_int("FT_CALIBRATION_MIN_SAMPLES", DEFAULT_MIN_SAMPLES, minimum=1),
        max_offset=_env_float("FT_CALIBRATION_MAX_OFFSET", DEFAULT_MAX_OFFSET, minimum=0.0, maximum=1.0),
        window_days=_env_int("FT_CALIBRATION_WINDOW_DAYS", DEFAULT_WINDOW_DAYS, minimum=1),
        half_life_days=half_life,
        feedback_increment=increment,
        min_sample_size=_env_float("FT_POLICY_MIN_SAMPLE_SIZE", MIN_SAMPLE_SIZE, minimum=0.0),
        exploration_floor=_env_float("FT_POLICY_EXPLORATION_FLOOR", EXPLORATION_FLOOR, minimum=0.0, maximum=1.0),
        auto_exclude_margin=_env_float("FT_POLICY_AUTO_EXCLUDE_MARGIN", AUTO_EXCLUDE_MARGIN, minimum=0.0),
        max_write_retries=_env_int("FT_MAX_WRITE_RETRIES", DEFAULT_MAX_WRITE_RETRIES, minimum=1),
    )


@lru_cache(maxsize=1)
def get_settings() -> CalibrationSettings:
    return load_settings()
