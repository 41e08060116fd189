from __future__ import annotations

import pytest

from calibration.core.offset import calibrate_score, compute_calibration_offset, compute_hit_rate


def test_offset_examples():
    assert compute_calibration_offset(0.5) == 0.0
    assert compute_calibration_offset(0.8) == pytest.approx(0.12)
    assert compute_calibration_offset(0.3) == pytest.approx(-0.08)


def test_offset_is_bounded():
    for i in range(0, 101):
        offset = compute_calibration_offset(i / 100, max_offset=0.2)
        assert -0.2 <= offset <= 0.2
    assert compute_calibration_offset(1.0) == pytest.approx(0.2)
    assert compute_calibration_offset(0.0) == pytest.approx(-0.2)


def test_offset_is_strictly_increasing():
    offsets = [compute_calibration_offset(i / 20) for i in range(21)]
    assert all(a < b for a, b in zip(offsets, offsets[1:]))


def test_hit_rate():
    assert compute_hit_rate(0, 0) is None
    assert compute_hit_rate(12, 3) == pytest.approx(0.8)


def test_calibrated_score_stays_in_unit_interval():
    assert calibrate_score(0.5, 0.12) == pytest.approx(0.62)
    assert calibrate_score(0.95, 0.2) == 1.0
    assert calibrate_score(0.05, -0.2) == 0.0
