"""Feedback fan-out.

One external feedback event feeds two independent consumers: source
calibration and account trust policy. Either update is a non-critical side
effect of recording feedback, so a failure in one is logged and does not stop
the other or fail the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from calibration.core.feedback_delta import calibration_contribution
from calibration.core.handles import normalize_handle
from feedtrust.services.account_policy_service import AccountPolicyService
from feedtrust.services.source_calibrator import SourceCalibrator


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeedbackEvent:
    owner_id: str
    content_item_id: str
    action: str
    occurred_at: datetime
    source_ids: tuple[str, ...] = ()
    author_handle: Optional[str] = None


@dataclass(slots=True)
class IngestOutcome:
    calibrations_updated: int = 0
    policies_updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class FeedbackIngestor:
    def __init__(self, calibrator: SourceCalibrator, policies: AccountPolicyService) -> None:
        self._calibrator = calibrator
        self._policies = policies

    def handle(self, event: FeedbackEvent) -> IngestOutcome:
        outcome = IngestOutcome()
        source_ids = tuple(dict.fromkeys(event.source_ids))

        if calibration_contribution(event.action) != (0, 0):
            for source_id in source_ids:
                try:
                    self._calibrator.update_on_feedback(event.owner_id, source_id, event.action)
                    outcome.calibrations_updated += 1
                except Exception as e:  # noqa: BLE001
                    logger.warning(
                        f"Failed to update source calibration {event.owner_id}/{source_id} "
                        f"for item {event.content_item_id} ({event.action}): {e}"
                    )
                    outcome.errors.append(f"calibration:{source_id}")

        handle = normalize_handle(event.author_handle) if event.author_handle else ""
        if handle:
            for source_id in source_ids:
                try:
                    self._policies.apply_feedback(source_id, handle, event.action, event.occurred_at)
                    outcome.policies_updated += 1
                except Exception as e:  # noqa: BLE001
                    logger.warning(
                        f"Failed to update account policy {source_id}/{handle} "
                        f"for item {event.content_item_id} ({event.action}): {e}"
                    )
                    outcome.errors.append(f"policy:{source_id}")

        return outcome
