"""Vetting Routes: applicant submission and admin review pipeline.

Invariants:
    - Submission is open to clients only; every review route requires admin
    - Approve returns the provisioned performer alongside the application
"""

from fastapi import APIRouter, Depends, status

from app.api.deps import get_vetting_pipeline, require_caller
from app.core.authorization import Caller
from app.core.domain_types import ReviewDecision
from app.schemas.vetting import (
    VettingApplicationCreate,
    VettingApplicationResponse,
    VettingEscalationRequest,
    VettingExpiryRequest,
    VettingReviewRequest,
    VettingReviewResponse,
)
from app.services.vetting_pipeline import VettingPipeline

router = APIRouter(prefix="/api/v1", tags=["vetting"])


@router.post(
    "/vetting/applications", response_model=VettingApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application(
    body: VettingApplicationCreate,
    caller: Caller = Depends(require_caller),
    pipeline: VettingPipeline = Depends(get_vetting_pipeline),
):
    return await pipeline.submit(caller, body)


@router.post("/admin/vetting/review", response_model=VettingReviewResponse)
async def review_application(
    body: VettingReviewRequest,
    caller: Caller = Depends(require_caller),
    pipeline: VettingPipeline = Depends(get_vetting_pipeline),
):
    """Approve (provisions performer + role) or reject an application."""
    return await pipeline.review(
        caller, body.application_id, ReviewDecision(body.decision), body.notes,
    )


@router.post("/admin/vetting/escalate", response_model=VettingApplicationResponse)
async def escalate_application(
    body: VettingEscalationRequest,
    caller: Caller = Depends(require_caller),
    pipeline: VettingPipeline = Depends(get_vetting_pipeline),
):
    return await pipeline.escalate(caller, body.application_id, body.notes)


@router.post("/admin/vetting/expire", response_model=VettingApplicationResponse)
async def expire_application(
    body: VettingExpiryRequest,
    caller: Caller = Depends(require_caller),
    pipeline: VettingPipeline = Depends(get_vetting_pipeline),
):
    return await pipeline.expire(caller, body.application_id)
