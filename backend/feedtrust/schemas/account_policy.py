"""Schemas for account trust policy endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from calibration.core.types import AccountPolicyDTO, AccountPolicyView


PolicyModeLiteral = Literal["auto", "always", "mute"]
PolicyStateLiteral = Literal["normal", "reduced", "muted"]


class _HandleBody(BaseModel):
    handle: str = Field(..., min_length=1, max_length=128, description="Account handle, with or without '@'")

    @field_validator("handle")
    @classmethod
    def validate_handle(cls, v: str) -> str:
        if not v.strip().lstrip("@").strip():
            raise ValueError("handle is required and must be a non-empty string")
        return v


class PolicyModeUpdate(_HandleBody):
    mode: PolicyModeLiteral


class PolicyHandleRequest(_HandleBody):
    pass


class NextEffectResponse(BaseModel):
    score: float
    throttle: float


class AccountPolicyViewResponse(BaseModel):
    handle: str
    mode: PolicyModeLiteral
    score: float = Field(ge=0.0, le=1.0)
    sample: float = Field(ge=0.0)
    throttle: float = Field(ge=0.0, le=1.0)
    state: PolicyStateLiteral
    included: bool
    next_like: NextEffectResponse
    next_dislike: NextEffectResponse

    @classmethod
    def from_view(cls, view: AccountPolicyView) -> "AccountPolicyViewResponse":
        return cls(
            handle=view.handle,
            mode=view.mode.value,
            score=view.score,
            sample=view.sample,
            throttle=view.throttle,
            state=view.state.value,
            included=view.included,
            next_like=NextEffectResponse(score=view.next_like.score, throttle=view.next_like.throttle),
            next_dislike=NextEffectResponse(score=view.next_dislike.score, throttle=view.next_dislike.throttle),
        )


class AccountPolicyRowResponse(BaseModel):
    """Stored (undecayed) state, for diagnostics."""

    source_id: str
    handle: str
    mode: PolicyModeLiteral
    pos_score: float
    neg_score: float
    last_feedback_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_dto(cls, row: AccountPolicyDTO) -> "AccountPolicyRowResponse":
        return cls(
            source_id=row.source_id,
            handle=row.handle,
            mode=row.mode.value,
            pos_score=row.pos_score,
            neg_score=row.neg_score,
            last_feedback_at=row.last_feedback_at,
            last_updated_at=row.last_updated_at,
        )


class AccountPolicyListResponse(BaseModel):
    policies: list[AccountPolicyViewResponse]
    reason: Optional[str] = None


class AccountPolicyResponse(BaseModel):
    policy: AccountPolicyViewResponse
    row: AccountPolicyRowResponse
