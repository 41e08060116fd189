"""Source calibration service.

Keeps a per-(owner, source) offset that nudges relevance scores toward the
owner's observed like/dislike hit rate for that source.

Write discipline:
- updates are read -> compute -> conditional write on `version`; a lost race
  re-reads and recomputes (bounded by settings.max_write_retries).
- items_shown is incremented server-side and never conflicts with feedback.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from calibration.core.decay import ensure_utc
from calibration.core.errors import ConcurrentUpdateError
from calibration.core.feedback_delta import FeedbackAction, calibration_contribution
from calibration.core.offset import calibrate_score, compute_calibration_offset
from calibration.core.stores import SourceCalibrationStore
from calibration.core.types import SourceCalibrationDTO
from feedtrust.core.settings import CalibrationSettings, get_settings


logger = logging.getLogger(__name__)

UTC = timezone.utc

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def is_window_stale(window_start: Optional[datetime], now: datetime, window_days: int) -> bool:
    if window_start is None:
        return True
    return ensure_utc(window_start) < ensure_utc(now) - timedelta(days=window_days)


def apply_calibration(
    ai_score: float,
    calibration: Optional[SourceCalibrationDTO],
    min_samples: int,
) -> float:
    """Adjust an AI score by the source offset, clamped to [0, 1].

    The stored offset may come from an earlier window; it is only honored once
    the current window again holds at least `min_samples` likes + dislikes.
    """
    if calibration is None:
        return ai_score
    if calibration.feedback_total < min_samples:
        return ai_score
    return calibrate_score(ai_score, calibration.calibration_offset)


class SourceCalibrator:
    """Orchestrates SourceCalibrationStore updates on feedback."""

    def __init__(
        self,
        store: SourceCalibrationStore,
        *,
        settings: Optional[CalibrationSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock

    @property
    def settings(self) -> CalibrationSettings:
        return self._settings

    def get(self, owner_id: str, source_id: str) -> Optional[SourceCalibrationDTO]:
        return self._store.get(owner_id, source_id)

    def get_or_create(self, owner_id: str, source_id: str) -> SourceCalibrationDTO:
        return self._store.get_or_create(owner_id, source_id)

    def list_by_owner(self, owner_id: str) -> list[SourceCalibrationDTO]:
        return self._store.list_by_owner(owner_id)

    def get_batch(self, owner_id: str, source_ids: Sequence[str]) -> dict[str, SourceCalibrationDTO]:
        """Bulk fetch for ranking many candidates in one round trip."""
        unique = list(dict.fromkeys(source_ids))
        if not unique:
            return {}
        return self._store.get_batch(owner_id, unique)

    def record_item_shown(self, owner_id: str, source_id: str) -> None:
        self._store.increment_shown(owner_id, source_id, self._clock())

    def update_on_feedback(
        self,
        owner_id: str,
        source_id: str,
        action: FeedbackAction | str,
        *,
        min_samples: Optional[int] = None,
        max_offset: Optional[float] = None,
        window_days: Optional[int] = None,
    ) -> SourceCalibrationDTO:
        """Fold one like/dislike into the rolling window and refresh the offset.

        Other actions only ensure the row exists and return it unchanged.
        """
        min_samples = self._settings.min_samples if min_samples is None else min_samples
        max_offset = self._settings.max_offset if max_offset is None else max_offset
        window_days = self._settings.window_days if window_days is None else window_days

        liked_delta, disliked_delta = calibration_contribution(action)
        current = self._store.get_or_create(owner_id, source_id)
        if liked_delta == 0 and disliked_delta == 0:
            return current

        for attempt in range(self._settings.max_write_retries):
            if attempt:
                refreshed = self._store.get(owner_id, source_id)
                current = refreshed if refreshed is not None else self._store.get_or_create(owner_id, source_id)

            now = self._clock()
            if is_window_stale(current.window_start, now, window_days):
                liked, disliked, window_start = liked_delta, disliked_delta, now
            else:
                liked = current.items_liked + liked_delta
                disliked = current.items_disliked + disliked_delta
                window_start = current.window_start

            hit_rate = current.rolling_hit_rate
            offset = current.calibration_offset
            total = liked + disliked
            if total >= min_samples:
                hit_rate = liked / total
                offset = compute_calibration_offset(hit_rate, max_offset=max_offset)

            written = self._store.write_feedback_state(
                owner_id,
                source_id,
                expected_version=current.version,
                items_liked=liked,
                items_disliked=disliked,
                window_start=window_start,
                rolling_hit_rate=hit_rate,
                calibration_offset=offset,
                now=now,
            )
            if written is not None:
                return written
            logger.debug(f"Calibration write conflict for {owner_id}/{source_id} (attempt {attempt + 1})")

        raise ConcurrentUpdateError(
            f"source calibration {owner_id}/{source_id}: gave up after "
            f"{self._settings.max_write_retries} conflicting writes"
        )

    def apply_calibration(
        self,
        ai_score: float,
        calibration: Optional[SourceCalibrationDTO],
        min_samples: Optional[int] = None,
    ) -> float:
        min_samples = self._settings.min_samples if min_samples is None else min_samples
        return apply_calibration(ai_score, calibration, min_samples)

    def reset(self, owner_id: str, source_id: str) -> Optional[SourceCalibrationDTO]:
        row = self._store.reset(owner_id, source_id, self._clock())
        if row is None:
            logger.info(f"Calibration reset skipped; no row for {owner_id}/{source_id}")
        return row

    def delete(self, owner_id: str, source_id: str) -> bool:
        return self._store.delete(owner_id, source_id)
