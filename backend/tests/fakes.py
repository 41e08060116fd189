"""In-memory stores with the same conditional-write contract as the repositories."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from calibration.core.decay import ensure_utc
from calibration.core.handles import normalize_handle
from calibration.core.stores import AccountPolicyStore, FeedbackHistory, SourceCalibrationStore
from calibration.core.types import (
    AccountPolicyDTO,
    HistoricalFeedback,
    PolicyMode,
    SourceCalibrationDTO,
)


class InMemoryCalibrationStore(SourceCalibrationStore):
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], SourceCalibrationDTO] = {}
        self.conflicts = 0
        self.batch_calls = 0
        # Runs once, right before the next conditional write is checked.
        self.before_write: Optional[Callable[[], None]] = None

    def get(self, owner_id: str, source_id: str) -> Optional[SourceCalibrationDTO]:
        return self.rows.get((owner_id, source_id))

    def get_or_create(self, owner_id: str, source_id: str) -> SourceCalibrationDTO:
        key = (owner_id, source_id)
        if key not in self.rows:
            self.rows[key] = SourceCalibrationDTO(
                owner_id=owner_id,
                source_id=source_id,
                items_shown=0,
                items_liked=0,
                items_disliked=0,
                rolling_hit_rate=None,
                calibration_offset=0.0,
                window_start=None,
                updated_at=None,
            )
        return self.rows[key]

    def list_by_owner(self, owner_id: str) -> list[SourceCalibrationDTO]:
        return sorted((r for (o, _), r in self.rows.items() if o == owner_id), key=lambda r: r.source_id)

    def get_batch(self, owner_id: str, source_ids: Sequence[str]) -> dict[str, SourceCalibrationDTO]:
        self.batch_calls += 1
        return {s: self.rows[(owner_id, s)] for s in source_ids if (owner_id, s) in self.rows}

    def increment_shown(self, owner_id: str, source_id: str, now: datetime) -> None:
        row = self.get_or_create(owner_id, source_id)
        self.rows[(owner_id, source_id)] = replace(row, items_shown=row.items_shown + 1, updated_at=now)

    def write_feedback_state(
        self,
        owner_id: str,
        source_id: str,
        *,
        expected_version: int,
        items_liked: int,
        items_disliked: int,
        window_start: Optional[datetime],
        rolling_hit_rate: Optional[float],
        calibration_offset: float,
        now: datetime,
    ) -> Optional[SourceCalibrationDTO]:
        hook, self.before_write = self.before_write, None
        if hook is not None:
            hook()

        row = self.rows.get((owner_id, source_id))
        if row is None or row.version != expected_version:
            self.conflicts += 1
            return None
        written = replace(
            row,
            items_liked=items_liked,
            items_disliked=items_disliked,
            window_start=window_start,
            rolling_hit_rate=rolling_hit_rate,
            calibration_offset=calibration_offset,
            updated_at=now,
            version=row.version + 1,
        )
        self.rows[(owner_id, source_id)] = written
        return written

    def reset(self, owner_id: str, source_id: str, now: datetime) -> Optional[SourceCalibrationDTO]:
        row = self.rows.get((owner_id, source_id))
        if row is None:
            return None
        written = replace(
            row,
            items_shown=0,
            items_liked=0,
            items_disliked=0,
            rolling_hit_rate=None,
            calibration_offset=0.0,
            window_start=None,
            updated_at=now,
            version=row.version + 1,
        )
        self.rows[(owner_id, source_id)] = written
        return written

    def delete(self, owner_id: str, source_id: str) -> bool:
        return self.rows.pop((owner_id, source_id), None) is not None


class InMemoryPolicyStore(AccountPolicyStore):
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], AccountPolicyDTO] = {}
        self.conflicts = 0
        self.score_writes = 0
        self.before_write: Optional[Callable[[], None]] = None

    def list_by_handles(self, source_id: str, handles: Sequence[str]) -> list[AccountPolicyDTO]:
        found = [self.rows[(source_id, h)] for h in handles if (source_id, h) in self.rows]
        return sorted(found, key=lambda r: r.handle)

    def list_by_source(self, source_id: str) -> list[AccountPolicyDTO]:
        return sorted((r for (s, _), r in self.rows.items() if s == source_id), key=lambda r: r.handle)

    def insert_defaults(self, source_id: str, handles: Sequence[str]) -> None:
        for h in handles:
            self.rows.setdefault(
                (source_id, h),
                AccountPolicyDTO(
                    id=uuid.uuid4(),
                    source_id=source_id,
                    handle=h,
                    mode=PolicyMode.AUTO,
                    pos_score=0.0,
                    neg_score=0.0,
                    last_feedback_at=None,
                    last_updated_at=None,
                    created_at=None,
                    updated_at=None,
                ),
            )

    def get(self, source_id: str, handle: str) -> Optional[AccountPolicyDTO]:
        return self.rows.get((source_id, handle))

    def write_scores(
        self,
        source_id: str,
        handle: str,
        *,
        expected_version: int,
        pos_score: float,
        neg_score: float,
        last_updated_at: datetime,
        last_feedback_at: Optional[datetime],
    ) -> Optional[AccountPolicyDTO]:
        hook, self.before_write = self.before_write, None
        if hook is not None:
            hook()

        row = self.rows.get((source_id, handle))
        if row is None or row.version != expected_version:
            self.conflicts += 1
            return None
        self.score_writes += 1
        written = replace(
            row,
            pos_score=pos_score,
            neg_score=neg_score,
            last_updated_at=last_updated_at,
            last_feedback_at=last_feedback_at,
            version=row.version + 1,
        )
        self.rows[(source_id, handle)] = written
        return written

    def reset_scores(self, source_id: str, handle: str, now: datetime) -> Optional[AccountPolicyDTO]:
        row = self.rows.get((source_id, handle))
        if row is None:
            return None
        written = replace(
            row,
            pos_score=0.0,
            neg_score=0.0,
            last_feedback_at=None,
            last_updated_at=now,
            version=row.version + 1,
        )
        self.rows[(source_id, handle)] = written
        return written

    def set_mode(self, source_id: str, handle: str, mode: PolicyMode) -> Optional[AccountPolicyDTO]:
        row = self.rows.get((source_id, handle))
        if row is None:
            return None
        written = replace(row, mode=mode)
        self.rows[(source_id, handle)] = written
        return written


class InMemoryFeedbackHistory(FeedbackHistory):
    def __init__(self) -> None:
        self.events: dict[tuple[str, str], list[HistoricalFeedback]] = {}

    def add(self, source_id: str, author: str, action: str, occurred_at: datetime) -> None:
        key = (source_id, normalize_handle(author))
        self.events.setdefault(key, []).append(HistoricalFeedback(action=action, occurred_at=occurred_at))

    def list_events(self, source_id: str, handle: str) -> list[HistoricalFeedback]:
        return sorted(self.events.get((source_id, handle), []), key=lambda e: ensure_utc(e.occurred_at))
