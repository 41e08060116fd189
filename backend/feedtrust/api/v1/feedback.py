"""Feedback fan-out endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from feedtrust.api.deps import get_feedback_ingestor
from feedtrust.schemas.feedback import FeedbackEventCreate, FeedbackIngestResponse
from feedtrust.services.feedback_ingest import FeedbackEvent, FeedbackIngestor


UTC = timezone.utc

router = APIRouter()


@router.post("/feedback", response_model=FeedbackIngestResponse, summary="Apply one feedback event")
def ingest_feedback(
    body: FeedbackEventCreate,
    ingestor: FeedbackIngestor = Depends(get_feedback_ingestor),
) -> FeedbackIngestResponse:
    """
    Update source calibration and account trust policy for a recorded feedback
    event. Consumer failures are logged, not surfaced as request errors.
    """
    event = FeedbackEvent(
        owner_id=body.owner_id,
        content_item_id=body.content_item_id,
        action=body.action,
        occurred_at=(body.occurred_at or datetime.now(UTC)).astimezone(UTC),
        source_ids=tuple(body.source_ids),
        author_handle=body.author_handle,
    )
    outcome = ingestor.handle(event)
    return FeedbackIngestResponse(
        ok=outcome.ok,
        calibrations_updated=outcome.calibrations_updated,
        policies_updated=outcome.policies_updated,
    )
