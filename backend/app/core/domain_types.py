"""Domain Types: identity wrapper and closed enums for every state the core knows.

Invariants:
    - UserId wraps the identity provider's subject UUID; a Caller always carries one
    - Every status column maps to exactly one Enum below; no raw string matching
    - Role is closed: a claim outside {client, performer, admin} is not a Role

Design Decisions:
    - NewType over a dataclass wrapper: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and store in String columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """Account roles carried by the identity provider's role claim."""
    CLIENT = "client"
    PERFORMER = "performer"
    ADMIN = "admin"

    @classmethod
    def parse(cls, claim: object) -> "Role | None":
        """Map a loosely-typed claim onto the enum; unknown values yield None."""
        if not isinstance(claim, str):
            return None
        try:
            return cls(claim.strip().lower())
        except ValueError:
            return None


class BookingStatus(str, Enum):
    """Performer-controlled approval state. APPROVED and DECLINED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class PaymentStatus(str, Enum):
    """Deposit reconciliation state. DEPOSIT_PAID is terminal."""
    PENDING = "pending"
    DEPOSIT_PENDING_REVIEW = "deposit_pending_review"
    DEPOSIT_PAID = "deposit_paid"


class ReferralStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class ApplicationStatus(str, Enum):
    """Vetting application lifecycle. APPROVED, REJECTED, EXPIRED are terminal."""
    PENDING = "pending"
    NEEDS_REVIEW = "needs_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ReviewDecision(str, Enum):
    """Admin verdict on a vetting application."""
    APPROVE = "approve"
    REJECT = "reject"


class Operation(str, Enum):
    """Every mutating operation the Authorization Guard rules on."""
    CREATE_BOOKING = "create_booking"
    DECIDE_BOOKING = "decide_booking"
    SUBMIT_RECEIPT = "submit_receipt"
    VERIFY_DEPOSIT = "verify_deposit"
    MARK_REFERRAL_PAID = "mark_referral_paid"
    SUBMIT_APPLICATION = "submit_application"
    REVIEW_APPLICATION = "review_application"
    ESCALATE_APPLICATION = "escalate_application"
    EXPIRE_APPLICATION = "expire_application"


class AuditAction(str, Enum):
    """Action names written to audit_logs.action."""
    CREATE_BOOKING = "create_booking"
    BOOKING_DECISION = "booking_decision"
    UPLOAD_RECEIPT = "upload_receipt"
    VERIFY_PAYID = "verify_payid"
    MARK_REFERRAL_PAID = "mark_referral_paid"
    SUBMIT_VETTING_APPLICATION = "submit_vetting_application"
    REVIEW_VETTING_APPLICATION = "review_vetting_application"
    ESCALATE_VETTING_APPLICATION = "escalate_vetting_application"
    EXPIRE_VETTING_APPLICATION = "expire_vetting_application"
