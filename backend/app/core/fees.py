"""Fee Calculator: deposit and referral amounts from a rate and a percentage.

Invariants:
    - All functions are PURE: no IO, no settings lookup, no side effects
    - Results are Decimal quantized to 0.01 with ROUND_HALF_UP
    - Percentages must lie in [0, 100]; negative rates are rejected
    - Referral creation is gated on the COMPUTED fee, never the override

Design Decisions:
    - Percentages passed explicitly by the caller: the calculator has no hidden
      global dependency and is testable without patching the environment
    - Decimal over float: 60 * 10 / 100 must be exactly 6.00, not 5.999...
    - Zero computed fee suppresses the referral even with an override present
      (product policy; an override only re-prices a referral that exists)
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce to Decimal and round half-up to the currency's minor unit."""
    try:
        # str() first: Decimal(0.1) carries binary noise, Decimal("0.1") does not
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _check_percentage(name: str, percentage: Decimal) -> None:
    if percentage < 0 or percentage > HUNDRED:
        raise ValueError(f"{name} must be between 0 and 100, got {percentage}")


def _percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    return to_money(amount * percentage / HUNDRED)


def compute_deposit(
    rate: Decimal | int | float | str,
    deposit_percentage: Decimal | int | float | str,
) -> Decimal:
    """Deposit owed up front: rate * deposit_percentage / 100, half-up to cents."""
    rate_d = Decimal(str(rate))
    pct = Decimal(str(deposit_percentage))
    if rate_d < 0:
        raise ValueError(f"rate must be non-negative, got {rate_d}")
    _check_percentage("deposit_percentage", pct)
    return _percent_of(rate_d, pct)


def compute_referral_fee(
    deposit_amount: Decimal | int | float | str,
    referral_percentage: Decimal | int | float | str,
) -> Decimal:
    """Referral commission: deposit_amount * referral_percentage / 100."""
    deposit = Decimal(str(deposit_amount))
    pct = Decimal(str(referral_percentage))
    if deposit < 0:
        raise ValueError(f"deposit_amount must be non-negative, got {deposit}")
    _check_percentage("referral_percentage", pct)
    return _percent_of(deposit, pct)


def resolve_effective_fee(
    computed_fee: Decimal, override_fee: Decimal | None,
) -> Decimal:
    """Amount shown to users: a positive override wins over the computed fee."""
    if override_fee is not None and override_fee > 0:
        return to_money(override_fee)
    return to_money(computed_fee)


def should_create_referral(computed_fee: Decimal) -> bool:
    """A referral row exists only for a strictly positive computed fee."""
    return computed_fee > 0
