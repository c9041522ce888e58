"""Authorization Guard: decides whether a caller may perform a requested transition.

Invariants:
    - PURE: a decision over (caller, operation, parties snapshot); no IO, no writes
    - caller None -> UnauthenticatedError; anything else not permitted -> ForbiddenError
    - Every Operation has exactly one rule in _RULES (checked at import time)
    - Role comparisons happen here only, against the closed Role enum

Design Decisions:
    - Rule table keyed by Operation over if/elif chains at call sites: adding an
      Operation without a rule fails loudly on import, not silently at runtime
    - BookingParties carries only the ids the rules need; the guard never sees ORM rows
"""

from dataclasses import dataclass
from typing import Callable

from app.core.domain_types import Operation, Role, UserId
from app.core.errors import ErrorContext, ForbiddenError, UnauthenticatedError


@dataclass(frozen=True)
class Caller:
    """Resolved identity: opaque user id plus the parsed role claim (None if unknown)."""
    user_id: UserId
    role: Role | None


@dataclass(frozen=True)
class BookingParties:
    """Ownership snapshot of a booking, read from current persisted state."""
    client_id: UserId
    performer_id: UserId


def _require_role(caller: Caller, role: Role) -> bool:
    return caller.role is role


def _is_admin(caller: Caller, _parties: BookingParties | None) -> bool:
    return _require_role(caller, Role.ADMIN)


def _is_client(caller: Caller, _parties: BookingParties | None) -> bool:
    return _require_role(caller, Role.CLIENT)


def _is_booking_performer(caller: Caller, parties: BookingParties | None) -> bool:
    return (
        parties is not None
        and _require_role(caller, Role.PERFORMER)
        and caller.user_id == parties.performer_id
    )


def _is_booking_client(caller: Caller, parties: BookingParties | None) -> bool:
    return (
        parties is not None
        and _require_role(caller, Role.CLIENT)
        and caller.user_id == parties.client_id
    )


def _may_apply(caller: Caller, _parties: BookingParties | None) -> bool:
    # Existing performers cannot re-apply; admins do not apply
    return caller.role is Role.CLIENT


_RULES: dict[Operation, Callable[[Caller, BookingParties | None], bool]] = {
    Operation.CREATE_BOOKING: _is_client,
    Operation.DECIDE_BOOKING: _is_booking_performer,
    Operation.SUBMIT_RECEIPT: _is_booking_client,
    Operation.VERIFY_DEPOSIT: _is_admin,
    Operation.MARK_REFERRAL_PAID: _is_admin,
    Operation.SUBMIT_APPLICATION: _may_apply,
    Operation.REVIEW_APPLICATION: _is_admin,
    Operation.ESCALATE_APPLICATION: _is_admin,
    Operation.EXPIRE_APPLICATION: _is_admin,
}

_missing = set(Operation) - set(_RULES)
if _missing:
    raise RuntimeError(f"Authorization rules missing for: {sorted(o.value for o in _missing)}")


def authorize(
    caller: Caller | None,
    operation: Operation,
    parties: BookingParties | None = None,
) -> Caller:
    """Return the caller if permitted, else raise Unauthenticated/Forbidden."""
    if caller is None:
        raise UnauthenticatedError(
            context=ErrorContext(operation=operation.value),
        )
    if not _RULES[operation](caller, parties):
        raise ForbiddenError(
            f"Not permitted to {operation.value.replace('_', ' ')}",
            context=ErrorContext(
                actor_id=str(caller.user_id), operation=operation.value,
            ),
        )
    return caller
