"""Referral ORM: commission owed on a verified deposit, tracked apart from the booking.

Invariants:
    - At most one referral per booking (UNIQUE booking_id)
    - fee is the computed amount, always > 0; override_fee optional, never replaces fee
    - status pending -> paid only; paid_at set exactly when status = paid
    - Never deleted
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import ReferralStatus
from app.core.fees import resolve_effective_fee
from app.db.base import Base


class Referral(Base):
    """Referral ledger entry created by deposit verification."""
    __tablename__ = "referrals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False, unique=True,
    )
    performer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    override_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReferralStatus.PENDING.value,
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    receipt_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def effective_fee(self) -> Decimal:
        """Amount displayed to users: positive override, else computed fee."""
        return resolve_effective_fee(self.fee, self.override_fee)
