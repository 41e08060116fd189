"""Controlled errors for feedback calibration.

- Validation errors are raised before any write.
- "Not found" is never an error here: services return None instead.
- Storage errors are not wrapped; they propagate from SQLAlchemy unmodified.
"""

from __future__ import annotations


class CalibrationError(RuntimeError):
    """Base error for calibration and trust-policy state."""


class InvalidPolicyModeError(CalibrationError, ValueError):
    """Raised when a policy mode is not one of auto/always/mute."""

    def __init__(self, mode: object) -> None:
        super().__init__(f"Invalid mode: {mode!r} (expected one of: auto, always, mute)")
        self.mode = mode


class CorruptStateError(CalibrationError):
    """Raised when a persisted row cannot be decoded into a valid state."""


class ConcurrentUpdateError(CalibrationError):
    """Raised when an optimistic write keeps losing to concurrent writers."""
