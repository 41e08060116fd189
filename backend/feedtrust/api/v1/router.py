"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from feedtrust.api.v1.account_policies import router as account_policies_router
from feedtrust.api.v1.feedback import router as feedback_router
from feedtrust.api.v1.source_calibrations import router as source_calibrations_router


router = APIRouter()
router.include_router(account_policies_router, prefix="/sources", tags=["account-policies"])
router.include_router(source_calibrations_router, prefix="/owners", tags=["source-calibrations"])
router.include_router(feedback_router, tags=["feedback"])
