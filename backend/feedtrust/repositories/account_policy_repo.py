"""Account trust policy repository (PostgreSQL).

Handles arriving here are already normalized by the service layer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from calibration.core.decay import ensure_utc
from calibration.core.errors import CorruptStateError
from calibration.core.stores import AccountPolicyStore
from calibration.core.types import AccountPolicyDTO, PolicyMode
from feedtrust.models.account_trust_policy import AccountTrustPolicy
from feedtrust.repositories.base import BaseRepository


logger = logging.getLogger(__name__)

_T = AccountTrustPolicy.__table__
_COLUMNS = (
    _T.c.id,
    _T.c.source_id,
    _T.c.handle,
    _T.c.mode,
    _T.c.pos_score,
    _T.c.neg_score,
    _T.c.last_feedback_at,
    _T.c.last_updated_at,
    _T.c.created_at,
    _T.c.updated_at,
    _T.c.version,
)


def _opt_ts(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def _decode_score(row: Mapping[str, Any], name: str) -> float:
    value = row[name]
    try:
        x = float(value)
    except (TypeError, ValueError) as e:
        raise CorruptStateError(
            f"account_trust_policies[{row['source_id']}/{row['handle']}].{name} cannot be decoded: {value!r}"
        ) from e
    if not math.isfinite(x) or x < 0:
        raise CorruptStateError(
            f"account_trust_policies[{row['source_id']}/{row['handle']}].{name} is invalid: {value!r}"
        )
    return x


def _to_dto(row: Mapping[str, Any]) -> AccountPolicyDTO:
    try:
        mode = PolicyMode(row["mode"])
    except ValueError as e:
        raise CorruptStateError(
            f"account_trust_policies[{row['source_id']}/{row['handle']}].mode is invalid: {row['mode']!r}"
        ) from e
    return AccountPolicyDTO(
        id=row["id"],
        source_id=row["source_id"],
        handle=row["handle"],
        mode=mode,
        pos_score=_decode_score(row, "pos_score"),
        neg_score=_decode_score(row, "neg_score"),
        last_feedback_at=_opt_ts(row["last_feedback_at"]),
        last_updated_at=_opt_ts(row["last_updated_at"]),
        created_at=_opt_ts(row["created_at"]),
        updated_at=_opt_ts(row["updated_at"]),
        version=int(row["version"]),
    )


def _key(source_id: str, handle: str):
    return (_T.c.source_id == source_id) & (_T.c.handle == handle)


class AccountPolicyRepository(BaseRepository[AccountTrustPolicy], AccountPolicyStore):
    """Durable trust policy state, one row per (source, normalized handle)."""

    def list_by_handles(self, source_id: str, handles: Sequence[str]) -> list[AccountPolicyDTO]:
        if not handles:
            return []
        stmt = (
            select(*_COLUMNS)
            .where(_T.c.source_id == source_id)
            .where(_T.c.handle.in_(list(handles)))
            .order_by(_T.c.handle.asc())
        )
        return [_to_dto(r) for r in self._execute(stmt).mappings().all()]

    def list_by_source(self, source_id: str) -> list[AccountPolicyDTO]:
        stmt = select(*_COLUMNS).where(_T.c.source_id == source_id).order_by(_T.c.handle.asc())
        return [_to_dto(r) for r in self._execute(stmt).mappings().all()]

    def insert_defaults(self, source_id: str, handles: Sequence[str]) -> None:
        if not handles:
            return
        stmt = (
            pg_insert(_T)
            .values([{"source_id": source_id, "handle": h} for h in handles])
            .on_conflict_do_nothing(index_elements=[_T.c.source_id, _T.c.handle])
        )
        created = self._write(stmt)
        if created:
            logger.info(f"Created {created} default account policies for source {source_id}")

    def get(self, source_id: str, handle: str) -> Optional[AccountPolicyDTO]:
        stmt = select(*_COLUMNS).where(_key(source_id, handle)).limit(1)
        row = self._execute(stmt).mappings().first()
        return _to_dto(row) if row else None

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
        stmt = (
            update(_T)
            .where(_key(source_id, handle))
            .where(_T.c.version == expected_version)
            .values(
                pos_score=pos_score,
                neg_score=neg_score,
                last_updated_at=last_updated_at,
                last_feedback_at=last_feedback_at,
                version=_T.c.version + 1,
            )
            .returning(*_COLUMNS)
        )
        row = self._write_returning(stmt)
        return _to_dto(row) if row else None

    def reset_scores(self, source_id: str, handle: str, now: datetime) -> Optional[AccountPolicyDTO]:
        stmt = (
            update(_T)
            .where(_key(source_id, handle))
            .values(
                pos_score=0.0,
                neg_score=0.0,
                last_feedback_at=None,
                last_updated_at=now,
                version=_T.c.version + 1,
            )
            .returning(*_COLUMNS)
        )
        row = self._write_returning(stmt)
        return _to_dto(row) if row else None

    def set_mode(self, source_id: str, handle: str, mode: PolicyMode) -> Optional[AccountPolicyDTO]:
        # Scores and the decay clock are left alone; version is not bumped so
        # in-flight score writes are not forced to retry.
        stmt = update(_T).where(_key(source_id, handle)).values(mode=mode.value).returning(*_COLUMNS)
        row = self._write_returning(stmt)
        return _to_dto(row) if row else None
