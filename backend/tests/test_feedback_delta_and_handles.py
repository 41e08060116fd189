from __future__ import annotations

import pytest

from calibration.core.feedback_delta import (
    FeedbackAction,
    apply_feedback_delta,
    calibration_contribution,
    get_feedback_delta,
    has_signal,
)
from calibration.core.handles import normalize_handle, normalize_handles


@pytest.mark.parametrize(
    "action,expected",
    [
        ("like", (1.0, 0.0)),
        ("save", (1.0, 0.0)),
        ("dislike", (0.0, 1.0)),
        ("skip", (0.0, 0.0)),
        ("mute", (0.0, 0.0)),
        ("bogus", (0.0, 0.0)),
        (FeedbackAction.DISLIKE, (0.0, 1.0)),
        (" LIKE ", (1.0, 0.0)),
    ],
)
def test_feedback_delta(action, expected):
    assert get_feedback_delta(action) == expected


def test_feedback_delta_uses_increment():
    assert get_feedback_delta("like", increment=2.5) == (2.5, 0.0)
    assert apply_feedback_delta(1.0, 1.0, "dislike", increment=0.5) == (1.0, 1.5)


def test_signal_detection():
    assert has_signal("like")
    assert has_signal("dislike")
    assert not has_signal("skip")
    assert not has_signal("mute")


def test_calibration_counts_only_explicit_votes():
    assert calibration_contribution("like") == (1, 0)
    assert calibration_contribution("dislike") == (0, 1)
    assert calibration_contribution("save") == (0, 0)
    assert calibration_contribution("skip") == (0, 0)


def test_handle_normalization_is_prefix_and_case_insensitive():
    assert normalize_handle("@Foo") == normalize_handle("foo") == "foo"
    assert normalize_handle("  @@Bar ") == "bar"
    assert normalize_handle("@ Baz") == "baz"


@pytest.mark.parametrize("raw", ["@Example", "  example", "@@EXAMPLE", "ex@mple", "@", ""])
def test_handle_normalization_is_idempotent(raw):
    once = normalize_handle(raw)
    assert normalize_handle(once) == once


def test_normalize_handles_dedupes_in_order():
    assert normalize_handles(["@B", "a", " b ", "", "@", "@A"]) == ["b", "a"]
