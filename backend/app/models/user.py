"""User ORM: marketplace accounts with the role the identity provider mirrors.

Invariants:
    - id is the identity provider's subject (UUID)
    - role is one of Role (client | performer | admin)
    - role changes only through vetting approval (client -> performer)

Design Decisions:
    - phone stored in E.164 or whatsapp:-prefixed form: messaging gateway sends as-is
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.core.domain_types import Role
from app.db.base import Base


class User(Base):
    """Account row; role is authoritative for the persistence layer's own policies."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Role.CLIENT.value,
    )
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
