"""Account trust policy service.

Per-handle inclusion decisions layered on decayed feedback magnitudes.

- Feedback moves pos/neg scores only; mode changes are explicit operator actions.
- The write path persists decayed+updated scores with a version check.
- The read path (policy views) projects decay to `now` and never writes.
- recompute_from_feedback rebuilds scores from the external event log and
  lands on the same numbers as the incremental path would have.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from calibration.core.decay import apply_decay, ensure_utc
from calibration.core.errors import ConcurrentUpdateError
from calibration.core.feedback_delta import FeedbackAction, apply_feedback_delta, has_signal
from calibration.core.handles import normalize_handle, normalize_handles
from calibration.core.policy_math import PolicyParams, compute_policy_view
from calibration.core.stores import AccountPolicyStore, FeedbackHistory
from calibration.core.types import (
    AccountPolicyDTO,
    AccountPolicyView,
    HistoricalFeedback,
    PolicyMode,
    parse_policy_mode,
)
from feedtrust.core.settings import CalibrationSettings, get_settings
from feedtrust.services.source_calibrator import Clock, utc_now


logger = logging.getLogger(__name__)


def replay_feedback(
    events: Iterable[HistoricalFeedback],
    now: datetime,
    params: PolicyParams,
) -> tuple[float, float, Optional[datetime]]:
    """Rebuild (pos, neg) from zero by replaying events oldest -> newest.

    Returns (pos, neg, last_event_at) with scores decayed forward to `now`.
    """
    ordered = sorted(events, key=lambda e: ensure_utc(e.occurred_at))
    pos, neg = 0.0, 0.0
    last_time: Optional[datetime] = None

    for event in ordered:
        # Same as the write path: signal-free actions leave scores and clocks alone.
        if not has_signal(event.action):
            continue
        event_time = ensure_utc(event.occurred_at)
        pos, neg = apply_decay(pos, neg, last_time, event_time, half_life_days=params.half_life_days)
        pos, neg = apply_feedback_delta(pos, neg, event.action, increment=params.feedback_increment)
        last_time = event_time

    pos, neg = apply_decay(pos, neg, last_time, now, half_life_days=params.half_life_days)
    return pos, neg, last_time


class AccountPolicyService:
    """Orchestrates AccountPolicyStore updates, projections and history rebuilds."""

    def __init__(
        self,
        store: AccountPolicyStore,
        history: Optional[FeedbackHistory] = None,
        *,
        settings: Optional[CalibrationSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._history = history
        self._settings = settings or get_settings()
        self._params = self._settings.policy_params()
        self._clock = clock

    @property
    def params(self) -> PolicyParams:
        return self._params

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def list_policies(self, source_id: str, handles: Sequence[str]) -> list[AccountPolicyDTO]:
        """Existing rows only; never creates."""
        return self._store.list_by_handles(source_id, normalize_handles(handles))

    def list_source_policies(self, source_id: str) -> list[AccountPolicyDTO]:
        return self._store.list_by_source(source_id)

    def get_policy(self, source_id: str, handle: str) -> Optional[AccountPolicyDTO]:
        return self._store.get(source_id, normalize_handle(handle))

    def upsert_defaults(self, source_id: str, handles: Sequence[str]) -> list[AccountPolicyDTO]:
        """Idempotently ensure a row per handle; existing rows (and modes) are untouched."""
        normalized = normalize_handles(handles)
        if not normalized:
            return []
        self._store.insert_defaults(source_id, normalized)
        return self._store.list_by_handles(source_id, normalized)

    def _ensure(self, source_id: str, handle: str) -> AccountPolicyDTO:
        self._store.insert_defaults(source_id, [handle])
        row = self._store.get(source_id, handle)
        if row is None:
            raise RuntimeError(f"Failed to load policy row for {source_id}/{handle}")
        return row

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def apply_feedback(
        self,
        source_id: str,
        handle: str,
        action: FeedbackAction | str,
        occurred_at: datetime,
    ) -> AccountPolicyDTO:
        normalized = normalize_handle(handle)
        occurred_at = ensure_utc(occurred_at)
        if not normalized:
            raise ValueError(f"Empty account handle for source {source_id}")
        current = self._ensure(source_id, normalized)

        if not has_signal(action):
            return current

        for attempt in range(self._settings.max_write_retries):
            if attempt:
                current = self._ensure(source_id, normalized)

            pos, neg = apply_decay(
                current.pos_score,
                current.neg_score,
                current.last_updated_at,
                occurred_at,
                half_life_days=self._params.half_life_days,
            )
            pos, neg = apply_feedback_delta(pos, neg, action, increment=self._params.feedback_increment)
            # A backdated event must not move the decay reference backwards.
            decayed_to = max(current.last_updated_at or occurred_at, occurred_at)
            feedback_at = max(current.last_feedback_at or occurred_at, occurred_at)

            written = self._store.write_scores(
                source_id,
                normalized,
                expected_version=current.version,
                pos_score=pos,
                neg_score=neg,
                last_updated_at=decayed_to,
                last_feedback_at=feedback_at,
            )
            if written is not None:
                return written
            logger.debug(f"Policy write conflict for {source_id}/{normalized} (attempt {attempt + 1})")

        raise ConcurrentUpdateError(
            f"account policy {source_id}/{normalized}: gave up after "
            f"{self._settings.max_write_retries} conflicting writes"
        )

    def reset_policy(self, source_id: str, handle: str) -> Optional[AccountPolicyDTO]:
        """Zero scores, keep the row and its mode. None if the handle has no row."""
        normalized = normalize_handle(handle)
        row = self._store.reset_scores(source_id, normalized, self._clock())
        if row is None:
            logger.info(f"Policy reset skipped; no row for {source_id}/{normalized}")
        else:
            logger.info(f"Policy reset for {source_id}/{normalized} (mode={row.mode.value})")
        return row

    def update_mode(self, source_id: str, handle: str, mode: PolicyMode | str) -> Optional[AccountPolicyDTO]:
        """Set the operator mode. Invalid modes raise before any write."""
        parsed = parse_policy_mode(mode)
        normalized = normalize_handle(handle)
        row = self._store.set_mode(source_id, normalized, parsed)
        if row is not None:
            logger.info(f"Policy mode for {source_id}/{normalized} set to {parsed.value}")
        return row

    def recompute_from_feedback(
        self, source_id: str, handle: str, now: Optional[datetime] = None
    ) -> Optional[AccountPolicyDTO]:
        """Rebuild scores from the full feedback history, overwriting incremental state."""
        if self._history is None:
            raise RuntimeError("recompute_from_feedback requires a FeedbackHistory")

        normalized = normalize_handle(handle)
        now = ensure_utc(now) if now is not None else self._clock()

        for attempt in range(self._settings.max_write_retries):
            current = self._store.get(source_id, normalized)
            if current is None:
                return None

            events = self._history.list_events(source_id, normalized)
            pos, neg, last_event_at = replay_feedback(events, now, self._params)

            written = self._store.write_scores(
                source_id,
                normalized,
                expected_version=current.version,
                pos_score=pos,
                neg_score=neg,
                last_updated_at=now,
                last_feedback_at=last_event_at,
            )
            if written is not None:
                logger.info(
                    f"Recomputed policy {source_id}/{normalized} from {len(events)} events "
                    f"(pos={pos:.4f}, neg={neg:.4f})"
                )
                return written
            logger.debug(f"Policy recompute conflict for {source_id}/{normalized} (attempt {attempt + 1})")

        raise ConcurrentUpdateError(
            f"account policy {source_id}/{normalized}: recompute gave up after "
            f"{self._settings.max_write_retries} conflicting writes"
        )

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def compute_policy_view(self, row: AccountPolicyDTO, now: Optional[datetime] = None) -> AccountPolicyView:
        return compute_policy_view(row, now or self._clock(), self._params)

    def views_for_source(
        self, source_id: str, handles: Sequence[str], now: Optional[datetime] = None
    ) -> list[AccountPolicyView]:
        """Ensure defaults for the handles and return their projected views."""
        now = now or self._clock()
        return [compute_policy_view(r, now, self._params) for r in self.upsert_defaults(source_id, handles)]
