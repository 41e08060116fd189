"""Storage contracts consumed by the calibration services.

Ownership:
- Services are the only callers allowed to create rows (get_or_create /
  insert_defaults); read paths never create.
- Conditional writes take `expected_version` and return None when the row was
  changed (or removed) since it was read. The caller re-reads and retries.
"""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Optional, Sequence

from calibration.core.types import (
    AccountPolicyDTO,
    HistoricalFeedback,
    PolicyMode,
    SourceCalibrationDTO,
)


class SourceCalibrationStore(abc.ABC):
    """Durable per-(owner, source) calibration state."""

    @abc.abstractmethod
    def get(self, owner_id: str, source_id: str) -> Optional[SourceCalibrationDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_or_create(self, owner_id: str, source_id: str) -> SourceCalibrationDTO:
        raise NotImplementedError

    @abc.abstractmethod
    def list_by_owner(self, owner_id: str) -> list[SourceCalibrationDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_batch(self, owner_id: str, source_ids: Sequence[str]) -> dict[str, SourceCalibrationDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def increment_shown(self, owner_id: str, source_id: str, now: datetime) -> None:
        """Atomically create-or-increment items_shown."""
        raise NotImplementedError

    @abc.abstractmethod
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
        raise NotImplementedError

    @abc.abstractmethod
    def reset(self, owner_id: str, source_id: str, now: datetime) -> Optional[SourceCalibrationDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def delete(self, owner_id: str, source_id: str) -> bool:
        raise NotImplementedError


class AccountPolicyStore(abc.ABC):
    """Durable per-(source, normalized handle) trust policy state.

    Handles passed in are already normalized by the caller.
    """

    @abc.abstractmethod
    def list_by_handles(self, source_id: str, handles: Sequence[str]) -> list[AccountPolicyDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_by_source(self, source_id: str) -> list[AccountPolicyDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def insert_defaults(self, source_id: str, handles: Sequence[str]) -> None:
        """Insert default rows for missing handles; never touch existing rows."""
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, source_id: str, handle: str) -> Optional[AccountPolicyDTO]:
        raise NotImplementedError

    @abc.abstractmethod
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
        raise NotImplementedError

    @abc.abstractmethod
    def reset_scores(self, source_id: str, handle: str, now: datetime) -> Optional[AccountPolicyDTO]:
        raise NotImplementedError

    @abc.abstractmethod
    def set_mode(self, source_id: str, handle: str, mode: PolicyMode) -> Optional[AccountPolicyDTO]:
        raise NotImplementedError


class FeedbackHistory(abc.ABC):
    """Read-only view of the external feedback event log."""

    @abc.abstractmethod
    def list_events(self, source_id: str, handle: str) -> list[HistoricalFeedback]:
        """All feedback on content by `handle` from `source_id`, oldest first."""
        raise NotImplementedError
