from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from calibration.core.decay import apply_decay, decay_factor, elapsed_days, ensure_utc


UTC = timezone.utc
T0 = datetime(2026, 1, 1, tzinfo=UTC)


def test_half_life_halves_magnitude():
    assert decay_factor(0.0) == 1.0
    assert decay_factor(45.0, half_life_days=45.0) == pytest.approx(0.5)
    assert decay_factor(90.0, half_life_days=45.0) == pytest.approx(0.25)


def test_decay_is_monotonic_non_increasing():
    days = [0, 0.5, 1, 7, 30, 45, 90, 365]
    factors = [decay_factor(d) for d in days]
    assert all(a >= b for a, b in zip(factors, factors[1:]))
    assert all(0.0 < f <= 1.0 for f in factors)


def test_decay_composes_across_intervals():
    t1 = T0 + timedelta(days=10, hours=3)
    t2 = T0 + timedelta(days=61)

    pos, neg = apply_decay(4.0, 2.0, T0, t1)
    pos, neg = apply_decay(pos, neg, t1, t2)
    direct = apply_decay(4.0, 2.0, T0, t2)

    assert pos == pytest.approx(direct[0])
    assert neg == pytest.approx(direct[1])


def test_fresh_state_is_not_decayed():
    assert apply_decay(3.0, 1.0, None, T0) == (3.0, 1.0)


def test_clock_skew_never_amplifies():
    earlier = T0 - timedelta(days=3)
    assert elapsed_days(T0, earlier) == 0.0
    assert apply_decay(3.0, 1.0, T0, earlier) == (3.0, 1.0)


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2026, 1, 1)
    assert ensure_utc(naive) == T0
    assert elapsed_days(naive, T0 + timedelta(days=2)) == pytest.approx(2.0)


def test_non_positive_half_life_rejected():
    with pytest.raises(ValueError):
        decay_factor(1.0, half_life_days=0)
