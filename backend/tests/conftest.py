from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/` packages (feedtrust, calibration) are importable for tests.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from calibration.core.decay import UTC  # noqa: E402
from feedtrust.core.env import load_env_if_present  # noqa: E402
from feedtrust.core.settings import CalibrationSettings  # noqa: E402


T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _db_url() -> str | None:
    load_env_if_present()
    return os.environ.get("DATABASE_URL")


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "backend" / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "backend" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


class FixedClock:
    """Manually advanced UTC clock for services."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start.astimezone(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def settings() -> CalibrationSettings:
    return CalibrationSettings()


# ---------------------------------------------------------------------------
# PostgreSQL integration fixtures (skipped without DATABASE_URL)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def engine() -> Engine:
    url = _db_url()
    if not url:
        pytest.skip("DATABASE_URL not set; skipping DB integration tests.")
    return create_engine(url, future=True)


@pytest.fixture(scope="session")
def migrate_db(engine: Engine) -> Generator[None, None, None]:
    """Ensure schema is upgraded to head for the test session."""
    url = _db_url()
    assert url is not None
    cfg = _alembic_config(url)
    command.upgrade(cfg, "head")
    yield


@pytest.fixture()
def db_session(engine: Engine, migrate_db: None) -> Generator[Session, None, None]:
    """DB session per test with rollback.

    Repositories commit every write; those commits only release a SAVEPOINT
    inside the outer transaction, which is rolled back afterwards.
    """
    connection = engine.connect()
    trans = connection.begin()
    session = Session(bind=connection, autoflush=False, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        if trans.is_active:
            trans.rollback()
        connection.close()
