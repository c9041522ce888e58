"""Referral Ledger: opens referrals on verified deposits and settles them.

Invariants:
    - open_for_verified_deposit runs INSIDE the caller's verification transaction
    - A referral is opened only when the computed fee is strictly positive
    - mark_paid: admin only; pending -> paid exactly once (conditional UPDATE)
    - No notification is sent on settlement

Design Decisions:
    - Ledger is a separate service from BookingService: referrals outlive the
      booking workflow and have their own admin surface
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import Caller, authorize
from app.core.domain_types import AuditAction, Operation, ReferralStatus
from app.core.errors import AlreadySettledError, ResourceNotFoundError
from app.core.fees import should_create_referral, to_money
from app.infrastructure.database import atomic
from app.models.booking import Booking
from app.models.referral import Referral
from app.schemas.referral import ReferralResponse
from app.services.audit_recorder import AuditRecorder

logger = logging.getLogger(__name__)


class ReferralLedger:
    """Referral creation and settlement."""

    def __init__(self, db: AsyncSession, audit: AuditRecorder | None = None):
        self.db = db
        self.audit = audit or AuditRecorder(db)

    def open_for_verified_deposit(
        self,
        booking: Booking,
        computed_fee: Decimal,
        override_fee: Decimal | None,
    ) -> Referral | None:
        """Stage a pending referral for a just-verified booking, or None for a zero fee."""
        if not should_create_referral(computed_fee):
            logger.info(
                "Computed referral fee is zero; no referral opened",
                extra={"booking_id": booking.id},
            )
            return None
        referral = Referral(
            booking_id=booking.id,
            performer_id=booking.performer_id,
            fee=computed_fee,
            override_fee=to_money(override_fee) if override_fee is not None else None,
            status=ReferralStatus.PENDING.value,
        )
        self.db.add(referral)
        return referral

    async def mark_paid(
        self, caller: Caller | None, referral_id: UUID, receipt_url: str | None,
    ) -> ReferralResponse:
        """Settle a pending referral."""
        caller = authorize(caller, Operation.MARK_REFERRAL_PAID)
        referral = await self.db.get(Referral, referral_id)
        if referral is None:
            raise ResourceNotFoundError("Referral", str(referral_id))
        if referral.status == ReferralStatus.PAID.value:
            raise AlreadySettledError(str(referral_id))

        async with atomic(self.db, "mark_referral_paid"):
            result = await self.db.execute(
                update(Referral)
                .where(
                    Referral.id == referral_id,
                    Referral.status == ReferralStatus.PENDING.value,
                )
                .values(
                    status=ReferralStatus.PAID.value,
                    paid_at=datetime.now(timezone.utc),
                    receipt_url=receipt_url,
                )
            )
            if result.rowcount != 1:
                raise AlreadySettledError(str(referral_id))
        await self.db.refresh(referral)

        response = ReferralResponse.model_validate(referral)
        logger.info(
            "Referral marked paid",
            extra={"referral_id": referral_id, "actor_id": caller.user_id},
        )
        await self.audit.record(
            actor_id=caller.user_id,
            action=AuditAction.MARK_REFERRAL_PAID,
            target_table="referrals",
            target_id=referral_id,
            metadata={"receipt_url": receipt_url},
        )
        return response
