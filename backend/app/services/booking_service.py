"""Booking Service: create, decide, receipt submission and deposit verification.

Invariants:
    - Every transition: read current row -> guard -> pure transition check ->
      conditional UPDATE re-validating the precondition -> commit -> audit
    - A conditional UPDATE that matches no row means another request won the race:
      InvalidStateError, nothing written
    - verify_deposit commits the payment update and the referral insert together
    - Audit and notifications happen only after commit and never fail the call

Design Decisions:
    - Conditional UPDATE over SELECT ... FOR UPDATE: one round trip, works on
      PostgreSQL and SQLite, and the row lock taken by UPDATE serializes two
      concurrent verifications so only one sees payment_status != deposit_paid
    - Fee percentages arrive as arguments: the service stays settings-agnostic
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import BookingParties, Caller, authorize
from app.core.booking_rules import (
    check_booking_decision, check_payment_transition, payment_sources_for,
)
from app.core.domain_types import (
    AuditAction, BookingStatus, Operation, PaymentStatus, Role, UserId,
)
from app.core.errors import ErrorContext, InvalidStateError, ResourceNotFoundError
from app.core.fees import compute_deposit, compute_referral_fee, resolve_effective_fee
from app.infrastructure.database import atomic
from app.models.booking import Booking
from app.models.service_offering import ServiceOffering
from app.models.user import User
from app.schemas.booking import (
    BookingCreate,
    BookingDecisionResponse,
    BookingResponse,
    DepositVerification,
    DepositVerificationResponse,
    ReceiptResponse,
)
from app.schemas.referral import ReferralResponse
from app.services.audit_recorder import AuditRecorder
from app.services.notification_outbox import NotificationOutbox
from app.services.referral_ledger import ReferralLedger

logger = logging.getLogger(__name__)


def _parties(booking: Booking) -> BookingParties:
    return BookingParties(
        client_id=UserId(booking.client_id),
        performer_id=UserId(booking.performer_id),
    )


def _lost_race(booking_id: UUID, message: str) -> InvalidStateError:
    return InvalidStateError(
        message,
        context=ErrorContext(target_table="bookings", target_id=str(booking_id)),
    )


class BookingService:
    """Booking aggregate transitions."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationOutbox | None = None,
        audit: AuditRecorder | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.audit = audit or AuditRecorder(db)
        self.ledger = ReferralLedger(db, self.audit)

    async def _get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.db.get(Booking, booking_id)
        if booking is None:
            raise ResourceNotFoundError("Booking", str(booking_id))
        return booking

    async def _phone_of(self, user_id: UUID) -> str | None:
        user = await self.db.get(User, user_id)
        return user.phone if user else None

    # ─── createBooking ───────────────────────────────────────────

    async def create_booking(
        self,
        caller: Caller | None,
        body: BookingCreate,
        deposit_percentage: Decimal,
    ) -> BookingResponse:
        caller = authorize(caller, Operation.CREATE_BOOKING)

        service = await self.db.get(ServiceOffering, body.service_id)
        if service is None:
            raise ResourceNotFoundError("Service", str(body.service_id))
        performer = await self.db.get(User, body.performer_id)
        if performer is None or performer.role != Role.PERFORMER.value:
            raise ResourceNotFoundError("Performer", str(body.performer_id))

        booking = Booking(
            client_id=caller.user_id,
            performer_id=body.performer_id,
            service_id=body.service_id,
            event_datetime=body.event_datetime,
            deposit_amount=compute_deposit(service.rate, deposit_percentage),
            booking_status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            deposit_pending_review=False,
        )
        async with atomic(self.db, "create_booking"):
            self.db.add(booking)
        await self.db.refresh(booking)

        response = BookingResponse.model_validate(booking)
        logger.info(
            f"Booking created with deposit {response.deposit_amount}",
            extra={"booking_id": response.id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.CREATE_BOOKING,
            target_table="bookings",
            target_id=response.id,
            metadata={
                "performer_id": body.performer_id,
                "service_id": body.service_id,
                "deposit_amount": response.deposit_amount,
            },
        )
        return response

    # ─── decideBooking ───────────────────────────────────────────

    async def decide(
        self, caller: Caller | None, booking_id: UUID, decision: BookingStatus,
    ) -> BookingDecisionResponse:
        booking = await self._get_booking(booking_id)
        caller = authorize(caller, Operation.DECIDE_BOOKING, _parties(booking))
        check_booking_decision(
            BookingStatus(booking.booking_status), decision, str(booking_id),
        )

        async with atomic(self.db, "booking_decision"):
            result = await self.db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.booking_status == BookingStatus.PENDING.value,
                )
                .values(
                    booking_status=decision.value,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                raise _lost_race(booking_id, "Booking was already decided")
        await self.db.refresh(booking)

        response = BookingDecisionResponse.model_validate(booking)
        client_id = booking.client_id
        logger.info(
            f"Booking {decision.value}",
            extra={"booking_id": booking_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.BOOKING_DECISION,
            target_table="bookings",
            target_id=booking_id,
            metadata={"decision": decision.value},
        )
        if self.notifier:
            self.notifier.booking_decided(
                await self._phone_of(client_id), booking_id, decision,
            )
        return response

    # ─── submitReceipt ───────────────────────────────────────────

    async def submit_receipt(
        self, caller: Caller | None, booking_id: UUID, receipt_url: str,
    ) -> ReceiptResponse:
        """Record the client's PayID receipt; re-submission overwrites the pointer."""
        booking = await self._get_booking(booking_id)
        caller = authorize(caller, Operation.SUBMIT_RECEIPT, _parties(booking))
        target = PaymentStatus.DEPOSIT_PENDING_REVIEW
        check_payment_transition(
            PaymentStatus(booking.payment_status), target, str(booking_id),
        )

        async with atomic(self.db, "upload_receipt"):
            result = await self.db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.payment_status.in_(
                        [s.value for s in payment_sources_for(target)],
                    ),
                )
                .values(
                    deposit_receipt_url=receipt_url,
                    deposit_pending_review=True,
                    payment_status=target.value,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                raise _lost_race(booking_id, "Deposit already paid")
        await self.db.refresh(booking)

        response = ReceiptResponse.model_validate(booking)
        logger.info(
            "Deposit receipt submitted",
            extra={"booking_id": booking_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.UPLOAD_RECEIPT,
            target_table="bookings",
            target_id=booking_id,
            metadata={"receipt_url": receipt_url},
        )
        return response

    # ─── verifyDeposit ───────────────────────────────────────────

    async def verify_deposit(
        self,
        caller: Caller | None,
        body: DepositVerification,
        referral_percentage: Decimal,
    ) -> DepositVerificationResponse:
        """Mark the deposit paid and open the referral, in one transaction."""
        caller = authorize(caller, Operation.VERIFY_DEPOSIT)
        booking_id = body.booking_id
        booking = await self._get_booking(booking_id)
        check_payment_transition(
            PaymentStatus(booking.payment_status),
            PaymentStatus.DEPOSIT_PAID,
            str(booking_id),
        )
        computed_fee = compute_referral_fee(booking.deposit_amount, referral_percentage)

        async with atomic(self.db, "verify_payid"):
            result = await self.db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.payment_status != PaymentStatus.DEPOSIT_PAID.value,
                )
                .values(
                    payment_status=PaymentStatus.DEPOSIT_PAID.value,
                    deposit_pending_review=False,
                    deposit_paid_at=datetime.now(timezone.utc),
                    eta_minutes=body.eta_minutes,
                    eta_note=body.eta_note,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                raise _lost_race(booking_id, "Deposit already paid")
            referral = self.ledger.open_for_verified_deposit(
                booking, computed_fee, body.referral_override_fee,
            )
        await self.db.refresh(booking)
        if referral is not None:
            await self.db.refresh(referral)

        response = DepositVerificationResponse(
            booking=BookingResponse.model_validate(booking),
            referral=(
                ReferralResponse.model_validate(referral) if referral else None
            ),
        )
        client_id, performer_id = booking.client_id, booking.performer_id
        resolved_fee = (
            resolve_effective_fee(computed_fee, body.referral_override_fee)
            if referral is not None else None
        )
        logger.info(
            f"Deposit verified; referral fee {resolved_fee}",
            extra={"booking_id": booking_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.VERIFY_PAYID,
            target_table="bookings",
            target_id=booking_id,
            metadata={
                "eta_minutes": body.eta_minutes,
                "eta_note": body.eta_note,
                "referral_fee": resolved_fee,
                "computed_fee": computed_fee,
                "override_fee": body.referral_override_fee,
                "referral_id": response.referral.id if response.referral else None,
            },
        )
        if self.notifier:
            self.notifier.deposit_verified(
                await self._phone_of(client_id),
                await self._phone_of(performer_id),
                booking_id,
                body.eta_minutes,
                body.eta_note,
            )
        return response
