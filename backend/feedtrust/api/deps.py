"""API dependencies.

Each request gets its own Session and freshly constructed services; nothing is
cached between requests. Tests override the service providers with fakes.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from feedtrust.core.db import get_sessionmaker
from feedtrust.core.settings import CalibrationSettings, get_settings
from feedtrust.repositories.account_policy_repo import AccountPolicyRepository
from feedtrust.repositories.feedback_history_repo import FeedbackHistoryRepository
from feedtrust.repositories.source_calibration_repo import SourceCalibrationRepository
from feedtrust.services.account_policy_service import AccountPolicyService
from feedtrust.services.feedback_ingest import FeedbackIngestor
from feedtrust.services.source_calibrator import SourceCalibrator


def get_db_session() -> Generator[Session, None, None]:
    """Provide a database session for request scope."""
    session: Session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


def get_calibration_settings() -> CalibrationSettings:
    return get_settings()


def get_source_calibrator(
    db: Session = Depends(get_db_session),
    settings: CalibrationSettings = Depends(get_calibration_settings),
) -> SourceCalibrator:
    return SourceCalibrator(SourceCalibrationRepository(db), settings=settings)


def get_account_policy_service(
    db: Session = Depends(get_db_session),
    settings: CalibrationSettings = Depends(get_calibration_settings),
) -> AccountPolicyService:
    return AccountPolicyService(
        AccountPolicyRepository(db),
        FeedbackHistoryRepository(db),
        settings=settings,
    )


def get_feedback_ingestor(
    calibrator: SourceCalibrator = Depends(get_source_calibrator),
    policies: AccountPolicyService = Depends(get_account_policy_service),
) -> FeedbackIngestor:
    return FeedbackIngestor(calibrator, policies)
