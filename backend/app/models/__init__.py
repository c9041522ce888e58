"""ORM Models: SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Booking and VettingApplication are the aggregates the core mutates;
      Referral, Performer and AuditLogEntry are created as their side effects

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from app.models.user import User  # noqa: F401
from app.models.service_offering import ServiceOffering  # noqa: F401
from app.models.booking import Booking  # noqa: F401
from app.models.referral import Referral  # noqa: F401
from app.models.vetting_application import VettingApplication  # noqa: F401
from app.models.performer import Performer  # noqa: F401
from app.models.audit_log import AuditLogEntry  # noqa: F401
