"""Referral Schemas: settlement request and ledger entry response."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.schemas.common import HttpUrlString, RequestModel, ResponseModel


class MarkReferralPaidRequest(RequestModel):
    referral_id: UUID
    receipt_url: HttpUrlString | None = None


class ReferralResponse(ResponseModel):
    """effective_fee is what users see; fee is kept for audit comparison."""
    id: UUID
    booking_id: UUID
    performer_id: UUID
    fee: Decimal
    override_fee: Decimal | None = None
    effective_fee: Decimal
    status: str
    paid_at: datetime | None = None
    receipt_url: str | None = None
    created_at: datetime
