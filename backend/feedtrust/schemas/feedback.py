"""Schemas for the feedback fan-out endpoint."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class FeedbackEventCreate(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=128)
    content_item_id: str = Field(..., min_length=1, max_length=128)
    action: str = Field(..., max_length=16, description="like | save | dislike | skip")
    source_ids: List[str] = Field(default_factory=list, description="Sources the item was ingested from")
    author_handle: Optional[str] = Field(None, max_length=128)
    occurred_at: Optional[datetime] = Field(None, description="Defaults to server time (UTC)")

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in {"like", "save", "dislike", "skip", "mute"}:
            raise ValueError("action must be 'like', 'save', 'dislike', 'skip' or 'mute'")
        return value

    @field_validator("occurred_at")
    @classmethod
    def validate_occurred_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and (v.tzinfo is None or v.utcoffset() is None):
            raise ValueError("occurred_at must be timezone-aware")
        return v


class FeedbackIngestResponse(BaseModel):
    ok: bool
    calibrations_updated: int
    policies_updated: int
