"""Source calibration repository (PostgreSQL)."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from calibration.core.decay import ensure_utc
from calibration.core.errors import CorruptStateError
from calibration.core.stores import SourceCalibrationStore
from calibration.core.types import SourceCalibrationDTO
from feedtrust.models.source_calibration import SourceCalibration
from feedtrust.repositories.base import BaseRepository


logger = logging.getLogger(__name__)

_T = SourceCalibration.__table__
_COLUMNS = (
    _T.c.owner_id,
    _T.c.source_id,
    _T.c.items_shown,
    _T.c.items_liked,
    _T.c.items_disliked,
    _T.c.rolling_hit_rate,
    _T.c.calibration_offset,
    _T.c.window_start,
    _T.c.updated_at,
    _T.c.version,
)


def _decode_count(row: Mapping[str, Any], name: str) -> int:
    value = row[name]
    if value is None or int(value) != value or value < 0:
        raise CorruptStateError(
            f"source_calibrations[{row['owner_id']}/{row['source_id']}].{name} is invalid: {value!r}"
        )
    return int(value)


def _decode_float(row: Mapping[str, Any], name: str, *, nullable: bool = False) -> Optional[float]:
    value = row[name]
    if value is None:
        if nullable:
            return None
        raise CorruptStateError(f"source_calibrations[{row['owner_id']}/{row['source_id']}].{name} is NULL")
    x = float(value)
    if not math.isfinite(x):
        raise CorruptStateError(
            f"source_calibrations[{row['owner_id']}/{row['source_id']}].{name} is not finite: {value!r}"
        )
    return x


def _to_dto(row: Mapping[str, Any]) -> SourceCalibrationDTO:
    hit_rate = _decode_float(row, "rolling_hit_rate", nullable=True)
    if hit_rate is not None and not (0.0 <= hit_rate <= 1.0):
        raise CorruptStateError(
            f"source_calibrations[{row['owner_id']}/{row['source_id']}].rolling_hit_rate out of range: {hit_rate!r}"
        )
    return SourceCalibrationDTO(
        owner_id=row["owner_id"],
        source_id=row["source_id"],
        items_shown=_decode_count(row, "items_shown"),
        items_liked=_decode_count(row, "items_liked"),
        items_disliked=_decode_count(row, "items_disliked"),
        rolling_hit_rate=hit_rate,
        calibration_offset=_decode_float(row, "calibration_offset") or 0.0,
        window_start=ensure_utc(row["window_start"]) if row["window_start"] is not None else None,
        updated_at=ensure_utc(row["updated_at"]) if row["updated_at"] is not None else None,
        version=int(row["version"]),
    )


def _key(owner_id: str, source_id: str):
    return (_T.c.owner_id == owner_id) & (_T.c.source_id == source_id)


class SourceCalibrationRepository(BaseRepository[SourceCalibration], SourceCalibrationStore):
    """Durable calibration state, one row per (owner, source)."""

    def get(self, owner_id: str, source_id: str) -> Optional[SourceCalibrationDTO]:
        stmt = select(*_COLUMNS).where(_key(owner_id, source_id)).limit(1)
        row = self._execute(stmt).mappings().first()
        return _to_dto(row) if row else None

    def get_or_create(self, owner_id: str, source_id: str) -> SourceCalibrationDTO:
        stmt = (
            pg_insert(_T)
            .values(owner_id=owner_id, source_id=source_id)
            .on_conflict_do_nothing(index_elements=[_T.c.owner_id, _T.c.source_id])
        )
        created = self._write(stmt)
        if created:
            logger.info(f"Created source calibration {owner_id}/{source_id}")
        row = self.get(owner_id, source_id)
        if row is None:
            # Deleted between insert and read (e.g. source removal cascade).
            raise RuntimeError(f"source_calibrations.get_or_create failed for {owner_id}/{source_id}")
        return row

    def list_by_owner(self, owner_id: str) -> list[SourceCalibrationDTO]:
        stmt = select(*_COLUMNS).where(_T.c.owner_id == owner_id).order_by(_T.c.updated_at.desc())
        return [_to_dto(r) for r in self._execute(stmt).mappings().all()]

    def get_batch(self, owner_id: str, source_ids: Sequence[str]) -> dict[str, SourceCalibrationDTO]:
        if not source_ids:
            return {}
        stmt = select(*_COLUMNS).where(_T.c.owner_id == owner_id).where(_T.c.source_id.in_(list(source_ids)))
        return {r["source_id"]: _to_dto(r) for r in self._execute(stmt).mappings().all()}

    def increment_shown(self, owner_id: str, source_id: str, now: datetime) -> None:
        stmt = pg_insert(_T).values(owner_id=owner_id, source_id=source_id, items_shown=1, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_T.c.owner_id, _T.c.source_id],
            set_={"items_shown": _T.c.items_shown + 1, "updated_at": now},
        )
        self._write(stmt)

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
        stmt = (
            update(_T)
            .where(_key(owner_id, source_id))
            .where(_T.c.version == expected_version)
            .values(
                items_liked=items_liked,
                items_disliked=items_disliked,
                window_start=window_start,
                rolling_hit_rate=rolling_hit_rate,
                calibration_offset=calibration_offset,
                version=_T.c.version + 1,
                updated_at=now,
            )
            .returning(*_COLUMNS)
        )
        row = self._write_returning(stmt)
        return _to_dto(row) if row else None

    def reset(self, owner_id: str, source_id: str, now: datetime) -> Optional[SourceCalibrationDTO]:
        stmt = (
            update(_T)
            .where(_key(owner_id, source_id))
            .values(
                items_shown=0,
                items_liked=0,
                items_disliked=0,
                rolling_hit_rate=None,
                calibration_offset=0.0,
                window_start=None,
                version=_T.c.version + 1,
                updated_at=now,
            )
            .returning(*_COLUMNS)
        )
        row = self._write_returning(stmt)
        return _to_dto(row) if row else None

    def delete(self, owner_id: str, source_id: str) -> bool:
        return self._write(delete(_T).where(_key(owner_id, source_id))) > 0
