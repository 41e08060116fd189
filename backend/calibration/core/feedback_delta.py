"""Feedback action -> (positive, negative) score delta."""

from __future__ import annotations

from enum import Enum


DEFAULT_FEEDBACK_INCREMENT = 1.0


class FeedbackAction(str, Enum):
    LIKE = "like"
    SAVE = "save"
    DISLIKE = "dislike"
    SKIP = "skip"
    MUTE = "mute"


POSITIVE_ACTIONS = frozenset({FeedbackAction.LIKE.value, FeedbackAction.SAVE.value})
NEGATIVE_ACTIONS = frozenset({FeedbackAction.DISLIKE.value})


def _action_value(action: FeedbackAction | str) -> str:
    if isinstance(action, FeedbackAction):
        return action.value
    return str(action).strip().lower()


def get_feedback_delta(
    action: FeedbackAction | str, *, increment: float = DEFAULT_FEEDBACK_INCREMENT
) -> tuple[float, float]:
    """Return (pos_delta, neg_delta) for an action.

    like/save count as positive, dislike as negative. skip, mute and any
    unknown action carry no signal.
    """
    value = _action_value(action)
    if value in POSITIVE_ACTIONS:
        return increment, 0.0
    if value in NEGATIVE_ACTIONS:
        return 0.0, increment
    return 0.0, 0.0


def has_signal(action: FeedbackAction | str) -> bool:
    pos_delta, neg_delta = get_feedback_delta(action)
    return pos_delta != 0.0 or neg_delta != 0.0


def apply_feedback_delta(
    pos: float,
    neg: float,
    action: FeedbackAction | str,
    *,
    increment: float = DEFAULT_FEEDBACK_INCREMENT,
) -> tuple[float, float]:
    pos_delta, neg_delta = get_feedback_delta(action, increment=increment)
    return pos + pos_delta, neg + neg_delta


def calibration_contribution(action: FeedbackAction | str) -> tuple[int, int]:
    """(liked, disliked) counter contribution for source calibration.

    Only explicit like/dislike move the hit rate; saves and skips do not.
    """
    value = _action_value(action)
    if value == FeedbackAction.LIKE.value:
        return 1, 0
    if value == FeedbackAction.DISLIKE.value:
        return 0, 1
    return 0, 0
