"""Booking Schemas: request bodies and responses for the booking lifecycle.

Invariants:
    - eventDatetime must be timezone-aware and in the future
    - receiptUrl must be an http(s) URL and is stored exactly as submitted;
      the object store owns the file
    - referralOverrideFee, when given, is a positive amount with at most 2 decimals
    - etaMinutes positive, etaNote at most 255 characters
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import AwareDatetime, Field, field_validator

from app.schemas.common import HttpUrlString, RequestModel, ResponseModel
from app.schemas.referral import ReferralResponse


class BookingCreate(RequestModel):
    performer_id: UUID
    service_id: UUID
    event_datetime: AwareDatetime

    @field_validator("event_datetime")
    @classmethod
    def must_be_future(cls, v: datetime) -> datetime:
        if v <= datetime.now(timezone.utc):
            raise ValueError("eventDatetime must be in the future")
        return v


class BookingDecisionRequest(RequestModel):
    booking_id: UUID
    decision: Literal["approved", "declined"]


class ReceiptSubmission(RequestModel):
    booking_id: UUID
    receipt_url: HttpUrlString


class DepositVerification(RequestModel):
    booking_id: UUID
    eta_minutes: int | None = Field(None, gt=0, le=24 * 60)
    eta_note: str | None = Field(None, max_length=255)
    referral_override_fee: Decimal | None = Field(
        None, gt=0, max_digits=10, decimal_places=2,
    )


class BookingResponse(ResponseModel):
    """Full booking row as returned to its parties."""
    id: UUID
    client_id: UUID
    performer_id: UUID
    service_id: UUID
    event_datetime: datetime
    deposit_amount: Decimal
    booking_status: str
    payment_status: str
    deposit_receipt_url: str | None = None
    deposit_pending_review: bool
    deposit_paid_at: datetime | None = None
    eta_minutes: int | None = None
    eta_note: str | None = None
    created_at: datetime


class BookingDecisionResponse(ResponseModel):
    id: UUID
    booking_status: str


class ReceiptResponse(ResponseModel):
    id: UUID
    payment_status: str
    deposit_pending_review: bool
    deposit_receipt_url: str | None = None


class DepositVerificationResponse(ResponseModel):
    booking: BookingResponse
    referral: ReferralResponse | None = None
