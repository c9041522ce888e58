"""PayID Routes: client uploads a deposit receipt, admin verifies the deposit.

Invariants:
    - Receipt submission is idempotent: re-posting overwrites the receipt URL
    - Verification creates at most one referral per booking
    - Referral percentage read from settings here and passed down explicitly
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_booking_service, require_caller
from app.config import Settings, get_settings
from app.core.authorization import Caller
from app.schemas.booking import (
    DepositVerification,
    DepositVerificationResponse,
    ReceiptResponse,
    ReceiptSubmission,
)
from app.services.booking_service import BookingService

router = APIRouter(prefix="/api/v1", tags=["payments"])


@router.post("/payid/receipt", response_model=ReceiptResponse)
async def submit_receipt(
    body: ReceiptSubmission,
    caller: Caller = Depends(require_caller),
    service: BookingService = Depends(get_booking_service),
):
    return await service.submit_receipt(caller, body.booking_id, body.receipt_url)


@router.post("/admin/verify-payid", response_model=DepositVerificationResponse)
async def verify_deposit(
    body: DepositVerification,
    caller: Caller = Depends(require_caller),
    service: BookingService = Depends(get_booking_service),
    settings: Settings = Depends(get_settings),
):
    """Admin confirms the PayID deposit; returns the booking and any new referral."""
    return await service.verify_deposit(caller, body, settings.referral_percentage)
