"""Feedback calibration primitives (pure logic + storage contracts)."""

from calibration.core.decay import apply_decay, decay_factor, elapsed_days, ensure_utc
from calibration.core.errors import (
    CalibrationError,
    ConcurrentUpdateError,
    CorruptStateError,
    InvalidPolicyModeError,
)
from calibration.core.feedback_delta import (
    FeedbackAction,
    apply_feedback_delta,
    calibration_contribution,
    get_feedback_delta,
    has_signal,
)
from calibration.core.handles import normalize_handle, normalize_handles
from calibration.core.offset import calibrate_score, compute_calibration_offset, compute_hit_rate
from calibration.core.policy_math import (
    PolicyParams,
    compute_policy_view,
    compute_score,
    compute_throttle,
    deterministic_sample,
    resolve_inclusion,
    resolve_state,
)
from calibration.core.stores import AccountPolicyStore, FeedbackHistory, SourceCalibrationStore
from calibration.core.types import (
    AccountPolicyDTO,
    AccountPolicyView,
    HistoricalFeedback,
    NextEffect,
    PolicyMode,
    PolicyState,
    SourceCalibrationDTO,
    parse_policy_mode,
)

__all__ = [
    "AccountPolicyDTO",
    "AccountPolicyStore",
    "AccountPolicyView",
    "CalibrationError",
    "ConcurrentUpdateError",
    "CorruptStateError",
    "FeedbackAction",
    "FeedbackHistory",
    "HistoricalFeedback",
    "InvalidPolicyModeError",
    "NextEffect",
    "PolicyMode",
    "PolicyParams",
    "PolicyState",
    "SourceCalibrationDTO",
    "SourceCalibrationStore",
    "apply_decay",
    "apply_feedback_delta",
    "calibrate_score",
    "calibration_contribution",
    "compute_calibration_offset",
    "compute_hit_rate",
    "compute_policy_view",
    "compute_score",
    "compute_throttle",
    "decay_factor",
    "deterministic_sample",
    "elapsed_days",
    "ensure_utc",
    "get_feedback_delta",
    "has_signal",
    "normalize_handle",
    "normalize_handles",
    "parse_policy_mode",
    "resolve_inclusion",
    "resolve_state",
]
