from __future__ import annotations

import uuid
from datetime import datetime

import pytest

from calibration.core.errors import CorruptStateError
from calibration.core.types import PolicyMode
from feedtrust.repositories import account_policy_repo, source_calibration_repo


def _calibration_row(**overrides):
    row = {
        "owner_id": "o",
        "source_id": "s",
        "items_shown": 3,
        "items_liked": 2,
        "items_disliked": 1,
        "rolling_hit_rate": None,
        "calibration_offset": 0.0,
        "window_start": datetime(2026, 1, 1),
        "updated_at": None,
        "version": 4,
    }
    row.update(overrides)
    return row


def _policy_row(**overrides):
    row = {
        "id": uuid.uuid4(),
        "source_id": "s",
        "handle": "example",
        "mode": "auto",
        "pos_score": 1.5,
        "neg_score": 0.0,
        "last_feedback_at": None,
        "last_updated_at": None,
        "created_at": None,
        "updated_at": None,
        "version": 0,
    }
    row.update(overrides)
    return row


def test_calibration_row_decodes():
    dto = source_calibration_repo._to_dto(_calibration_row())
    assert dto.feedback_total == 3
    assert dto.version == 4
    assert dto.window_start.tzinfo is not None


@pytest.mark.parametrize(
    "overrides",
    [
        {"items_liked": -1},
        {"items_shown": None},
        {"rolling_hit_rate": 1.5},
        {"calibration_offset": float("nan")},
        {"calibration_offset": None},
    ],
)
def test_corrupt_calibration_row_is_surfaced(overrides):
    with pytest.raises(CorruptStateError):
        source_calibration_repo._to_dto(_calibration_row(**overrides))


def test_policy_row_decodes():
    dto = account_policy_repo._to_dto(_policy_row(mode="mute"))
    assert dto.mode is PolicyMode.MUTE
    assert dto.pos_score == 1.5


@pytest.mark.parametrize(
    "overrides",
    [
        {"mode": "banned"},
        {"pos_score": "abc"},
        {"neg_score": -2.0},
        {"pos_score": float("inf")},
        {"neg_score": None},
    ],
)
def test_corrupt_policy_row_is_surfaced(overrides):
    with pytest.raises(CorruptStateError):
        account_policy_repo._to_dto(_policy_row(**overrides))
