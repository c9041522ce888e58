"""Referral Routes: admin settlement of referral fees."""

from fastapi import APIRouter, Depends

from app.api.deps import get_referral_ledger, require_caller
from app.core.authorization import Caller
from app.schemas.referral import MarkReferralPaidRequest, ReferralResponse
from app.services.referral_ledger import ReferralLedger

router = APIRouter(prefix="/api/v1/admin/referrals", tags=["referrals"])


@router.post("/mark-paid", response_model=ReferralResponse)
async def mark_referral_paid(
    body: MarkReferralPaidRequest,
    caller: Caller = Depends(require_caller),
    ledger: ReferralLedger = Depends(get_referral_ledger),
):
    return await ledger.mark_paid(caller, body.referral_id, body.receipt_url)
