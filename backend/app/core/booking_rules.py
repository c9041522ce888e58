"""Booking Transitions: legal moves for booking_status and payment_status.

Invariants:
    - booking_status: pending -> approved | declined, both terminal
    - payment_status: pending -> deposit_pending_review -> deposit_paid, deposit_paid terminal
    - Receipt re-submission from deposit_pending_review is allowed (overwrites the pointer)
    - All functions are PURE and raise InvalidStateError on an illegal move

Design Decisions:
    - Transition tables as frozensets: the same tables drive the pre-check here and
      the WHERE clause of the conditional UPDATE in services (one source of truth)
    - Admin may verify from pending (receipt not uploaded yet): the PayID transfer
      can be confirmed out-of-band
"""

from app.core.domain_types import BookingStatus, PaymentStatus
from app.core.errors import ErrorContext, InvalidStateError

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.DECLINED}),
    BookingStatus.APPROVED: frozenset(),
    BookingStatus.DECLINED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.DEPOSIT_PENDING_REVIEW, PaymentStatus.DEPOSIT_PAID,
    }),
    PaymentStatus.DEPOSIT_PENDING_REVIEW: frozenset({
        PaymentStatus.DEPOSIT_PENDING_REVIEW, PaymentStatus.DEPOSIT_PAID,
    }),
    PaymentStatus.DEPOSIT_PAID: frozenset(),
}


def payment_sources_for(target: PaymentStatus) -> frozenset[PaymentStatus]:
    """All payment states from which `target` is reachable in one step."""
    return frozenset(
        source for source, targets in PAYMENT_TRANSITIONS.items()
        if target in targets
    )


def check_booking_decision(
    current: BookingStatus, decision: BookingStatus, booking_id: str,
) -> None:
    """Rule: only a pending booking can be approved or declined."""
    if decision not in (BookingStatus.APPROVED, BookingStatus.DECLINED):
        raise InvalidStateError(
            f"'{decision.value}' is not a booking decision",
            current_state=current.value,
        )
    if decision not in BOOKING_TRANSITIONS[current]:
        raise InvalidStateError(
            f"Booking already {current.value}; create a new booking instead",
            current_state=current.value,
            context=ErrorContext(target_table="bookings", target_id=booking_id),
        )


def check_payment_transition(
    current: PaymentStatus, target: PaymentStatus, booking_id: str,
) -> None:
    """Rule: payment_status only moves forward; deposit_paid is final."""
    if target not in PAYMENT_TRANSITIONS[current]:
        if current is PaymentStatus.DEPOSIT_PAID:
            message = "Deposit already paid"
        else:
            message = f"Cannot move payment from {current.value} to {target.value}"
        raise InvalidStateError(
            message,
            current_state=current.value,
            context=ErrorContext(target_table="bookings", target_id=booking_id),
        )
