from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from calibration.core.types import PolicyMode
from feedtrust.repositories.account_policy_repo import AccountPolicyRepository
from feedtrust.repositories.source_calibration_repo import SourceCalibrationRepository
from feedtrust.services.account_policy_service import AccountPolicyService
from feedtrust.services.source_calibrator import SourceCalibrator


def test_expected_tables_exist(db_session: Session):
    rows = db_session.execute(
        text("select tablename from pg_tables where schemaname='public' order by tablename")
    ).fetchall()
    tables = {r[0] for r in rows}
    assert {"source_calibrations", "account_trust_policies"}.issubset(tables)


def test_mode_check_constraint(db_session: Session):
    with pytest.raises(IntegrityError):
        db_session.execute(
            text("insert into account_trust_policies (source_id, handle, mode) values ('s', 'h', 'banned')")
        )


# ---------------------------------------------------------------------------
# source_calibrations
# ---------------------------------------------------------------------------


def test_calibration_get_or_create_is_idempotent(db_session: Session):
    repo = SourceCalibrationRepository(db_session)
    first = repo.get_or_create("owner-1", "src-1")
    second = repo.get_or_create("owner-1", "src-1")

    assert first == second
    assert first.version == 0
    assert first.items_shown == 0
    assert first.rolling_hit_rate is None


def test_calibration_increment_shown_upserts(db_session: Session, clock):
    repo = SourceCalibrationRepository(db_session)
    repo.increment_shown("owner-1", "src-1", clock.now)
    repo.increment_shown("owner-1", "src-1", clock.now)

    row = repo.get("owner-1", "src-1")
    assert row.items_shown == 2
    assert row.version == 0


def test_calibration_conditional_write(db_session: Session, clock):
    repo = SourceCalibrationRepository(db_session)
    row = repo.get_or_create("owner-1", "src-1")

    kwargs = dict(
        items_liked=1,
        items_disliked=0,
        window_start=clock.now,
        rolling_hit_rate=None,
        calibration_offset=0.0,
        now=clock.now,
    )
    written = repo.write_feedback_state("owner-1", "src-1", expected_version=row.version, **kwargs)
    assert written.items_liked == 1
    assert written.version == row.version + 1
    assert written.window_start == clock.now

    stale = repo.write_feedback_state("owner-1", "src-1", expected_version=row.version, **kwargs)
    assert stale is None


def test_calibration_reset_delete_and_batch(db_session: Session, clock):
    repo = SourceCalibrationRepository(db_session)
    repo.increment_shown("owner-1", "a", clock.now)
    repo.get_or_create("owner-1", "b")

    assert set(repo.get_batch("owner-1", ["a", "b", "c"])) == {"a", "b"}
    assert {r.source_id for r in repo.list_by_owner("owner-1")} == {"a", "b"}

    reset = repo.reset("owner-1", "a", clock.now)
    assert reset.items_shown == 0
    assert repo.reset("owner-1", "missing", clock.now) is None

    assert repo.delete("owner-1", "b") is True
    assert repo.delete("owner-1", "b") is False


def test_calibrator_on_postgres(db_session: Session, settings, clock):
    calibrator = SourceCalibrator(SourceCalibrationRepository(db_session), settings=settings, clock=clock)
    row = None
    for action in ["like"] * 12 + ["dislike"] * 3:
        row = calibrator.update_on_feedback("owner-1", "src-1", action)

    assert row.rolling_hit_rate == pytest.approx(0.8)
    assert row.calibration_offset == pytest.approx(0.12)
    assert calibrator.apply_calibration(0.5, row) == pytest.approx(0.62)


# ---------------------------------------------------------------------------
# account_trust_policies
# ---------------------------------------------------------------------------


def test_policy_insert_defaults_keeps_existing_mode(db_session: Session):
    repo = AccountPolicyRepository(db_session)
    repo.insert_defaults("src-1", ["alice"])
    repo.set_mode("src-1", "alice", PolicyMode.MUTE)

    repo.insert_defaults("src-1", ["alice", "bob"])
    rows = repo.list_by_handles("src-1", ["bob", "alice"])

    assert [r.handle for r in rows] == ["alice", "bob"]
    assert rows[0].mode is PolicyMode.MUTE
    assert rows[1].mode is PolicyMode.AUTO
    assert [r.handle for r in repo.list_by_source("src-1")] == ["alice", "bob"]


def test_policy_conditional_write_and_mode(db_session: Session, clock):
    repo = AccountPolicyRepository(db_session)
    repo.insert_defaults("src-1", ["alice"])
    row = repo.get("src-1", "alice")

    written = repo.write_scores(
        "src-1",
        "alice",
        expected_version=row.version,
        pos_score=1.0,
        neg_score=0.0,
        last_updated_at=clock.now,
        last_feedback_at=clock.now,
    )
    assert written.version == row.version + 1
    assert written.pos_score == 1.0

    assert (
        repo.write_scores(
            "src-1",
            "alice",
            expected_version=row.version,
            pos_score=5.0,
            neg_score=5.0,
            last_updated_at=clock.now,
            last_feedback_at=clock.now,
        )
        is None
    )

    muted = repo.set_mode("src-1", "alice", PolicyMode.MUTE)
    assert muted.version == written.version
    assert muted.pos_score == 1.0

    reset = repo.reset_scores("src-1", "alice", clock.now)
    assert reset.pos_score == 0.0
    assert reset.last_feedback_at is None
    assert reset.mode is PolicyMode.MUTE
    assert repo.set_mode("src-1", "ghost", PolicyMode.AUTO) is None


def test_policy_service_on_postgres(db_session: Session, settings, clock):
    service = AccountPolicyService(AccountPolicyRepository(db_session), settings=settings, clock=clock)
    t0 = clock.now
    service.apply_feedback("src-1", "@Example", "dislike", t0)
    row = service.apply_feedback("src-1", "example", "like", t0 + timedelta(days=45))

    assert row.handle == "example"
    assert row.neg_score == pytest.approx(0.5)
    assert row.pos_score == pytest.approx(1.0)
    assert row.mode is PolicyMode.AUTO
