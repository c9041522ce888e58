"""Booking ORM: the aggregate whose approval and payment states the core governs.

Invariants:
    - booking_status in BookingStatus; changed only by the booking's performer
    - payment_status in PaymentStatus; changed by the booking's client (receipt)
      or an admin (verification)
    - payment_status = deposit_paid => deposit_pending_review is False and
      deposit_paid_at is set
    - deposit_amount frozen at creation time

Design Decisions:
    - client_id/performer_id reference users.id: ownership checks compare the
      caller's subject directly, no join through performers
    - Status columns are plain strings holding enum values (ADR: portable across
      PostgreSQL and SQLite test runs, no native ENUM migrations)
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Integer, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import BookingStatus, PaymentStatus
from app.db.base import Base


class Booking(Base):
    """Booking aggregate root."""
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    performer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("services.id"), nullable=False,
    )
    event_datetime: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    booking_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PENDING.value,
    )
    payment_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PaymentStatus.PENDING.value,
    )
    deposit_receipt_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    deposit_pending_review: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    deposit_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    eta_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    eta_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc),
    )
