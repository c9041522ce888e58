"""VettingApplication ORM: a prospective performer's submission for admin review.

Invariants:
    - status in ApplicationStatus; approved | rejected | expired are terminal
    - reviewer_id/reviewed_at set together on approve or reject
    - approval_notes set only on approve, rejection_reason only on reject
    - status = approved => a performers row references this application
    - At most one open (pending | needs_review) application per user_id,
      enforced by a partial unique index

Design Decisions:
    - portfolio_urls/document_urls as JSON lists: the object store owns the files,
      the core only keeps their URLs
"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    String, Text, Integer, Date, DateTime, JSON, ForeignKey, Index, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import ApplicationStatus
from app.db.base import Base

OPEN_STATUS_CLAUSE = "status IN ('pending', 'needs_review')"


class VettingApplication(Base):
    """Vetting application awaiting (or past) admin review."""
    __tablename__ = "vetting_applications"
    __table_args__ = (
        Index(
            "uq_vetting_applications_open_per_user",
            "user_id",
            unique=True,
            postgresql_where=text(OPEN_STATUS_CLAUSE),
            sqlite_where=text(OPEN_STATUS_CLAUSE),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    stage_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    phone: Mapped[str] = mapped_column(String(40), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    performance_type: Mapped[str] = mapped_column(String(100), nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    portfolio_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    document_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApplicationStatus.PENDING.value,
    )
    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
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
