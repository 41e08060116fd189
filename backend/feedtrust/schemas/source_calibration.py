"""Schemas for source calibration endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from calibration.core.types import SourceCalibrationDTO


class SourceCalibrationResponse(BaseModel):
    owner_id: str
    source_id: str
    items_shown: int = Field(ge=0)
    items_liked: int = Field(ge=0)
    items_disliked: int = Field(ge=0)
    rolling_hit_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    calibration_offset: float
    window_start: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dto(cls, row: SourceCalibrationDTO) -> "SourceCalibrationResponse":
        return cls(
            owner_id=row.owner_id,
            source_id=row.source_id,
            items_shown=row.items_shown,
            items_liked=row.items_liked,
            items_disliked=row.items_disliked,
            rolling_hit_rate=row.rolling_hit_rate,
            calibration_offset=row.calibration_offset,
            window_start=row.window_start,
            updated_at=row.updated_at,
        )


class SourceCalibrationListResponse(BaseModel):
    total: int
    items: list[SourceCalibrationResponse]
