"""Account trust policy endpoints (administrative pass-through)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from calibration.core.types import AccountPolicyDTO
from feedtrust.api.deps import get_account_policy_service
from feedtrust.schemas.account_policy import (
    AccountPolicyListResponse,
    AccountPolicyResponse,
    AccountPolicyRowResponse,
    AccountPolicyViewResponse,
    PolicyHandleRequest,
    PolicyModeUpdate,
)
from feedtrust.services.account_policy_service import AccountPolicyService


UTC = timezone.utc

router = APIRouter()


def _respond(service: AccountPolicyService, row: Optional[AccountPolicyDTO], handle: str) -> AccountPolicyResponse:
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Policy not found for handle: {handle}")
    view = service.compute_policy_view(row, datetime.now(UTC))
    return AccountPolicyResponse(
        policy=AccountPolicyViewResponse.from_view(view),
        row=AccountPolicyRowResponse.from_dto(row),
    )


@router.get(
    "/{source_id}/account-policies",
    response_model=AccountPolicyListResponse,
    summary="List account policies for a source",
)
def list_account_policies(
    source_id: str,
    handle: List[str] = Query(default=[], description="Handles to ensure and list; omit to list existing rows"),
    service: AccountPolicyService = Depends(get_account_policy_service),
) -> AccountPolicyListResponse:
    """
    With handles: ensure a default row per handle, then return projected views.
    Without: return views for every existing row of the source.
    """
    now = datetime.now(UTC)
    if handle:
        views = service.views_for_source(source_id, handle, now)
    else:
        views = [service.compute_policy_view(r, now) for r in service.list_source_policies(source_id)]

    reason = None if views else "No accounts tracked for source"
    return AccountPolicyListResponse(
        policies=[AccountPolicyViewResponse.from_view(v) for v in views],
        reason=reason,
    )


@router.patch(
    "/{source_id}/account-policies/mode",
    response_model=AccountPolicyResponse,
    summary="Update the mode of an account policy",
)
def update_account_policy_mode(
    source_id: str,
    body: PolicyModeUpdate,
    service: AccountPolicyService = Depends(get_account_policy_service),
) -> AccountPolicyResponse:
    # Operator intent applies to handles not yet seen in feedback too.
    service.upsert_defaults(source_id, [body.handle])
    row = service.update_mode(source_id, body.handle, body.mode)
    return _respond(service, row, body.handle)


@router.post(
    "/{source_id}/account-policies/reset",
    response_model=AccountPolicyResponse,
    summary="Reset feedback scores of an account policy",
)
def reset_account_policy(
    source_id: str,
    body: PolicyHandleRequest,
    service: AccountPolicyService = Depends(get_account_policy_service),
) -> AccountPolicyResponse:
    row = service.reset_policy(source_id, body.handle)
    return _respond(service, row, body.handle)


@router.post(
    "/{source_id}/account-policies/recompute",
    response_model=AccountPolicyResponse,
    summary="Rebuild an account policy from feedback history",
)
def recompute_account_policy(
    source_id: str,
    body: PolicyHandleRequest,
    service: AccountPolicyService = Depends(get_account_policy_service),
) -> AccountPolicyResponse:
    row = service.recompute_from_feedback(source_id, body.handle, datetime.now(UTC))
    return _respond(service, row, body.handle)
