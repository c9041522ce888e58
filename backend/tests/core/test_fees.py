"""Fee Calculator: deposit and referral arithmetic.

Tests:
    - 200.00 at 30% -> 60.00; 60.00 at 10% -> 6.00
    - Half-up rounding on the cent
    - Override resolution and the computed-fee gate on referral creation
    - Out-of-range percentages and negative amounts rejected
"""

from decimal import Decimal

import pytest

from app.core.fees import (
    compute_deposit,
    compute_referral_fee,
    resolve_effective_fee,
    should_create_referral,
    to_money,
)


def test_deposit_of_200_at_30_percent():
    assert compute_deposit(Decimal("200.00"), Decimal("30")) == Decimal("60.00")


def test_referral_of_60_at_10_percent():
    assert compute_referral_fee(Decimal("60.00"), Decimal("10")) == Decimal("6.00")


def test_150_rate_chain():
    deposit = compute_deposit(Decimal("150"), 30)
    assert deposit == Decimal("45.00")
    assert compute_referral_fee(deposit, 10) == Decimal("4.50")


def test_results_carry_two_decimal_places():
    assert str(compute_deposit(100, 30)) == "30.00"


@pytest.mark.parametrize("rate, pct, expected", [
    ("0.05", "50", "0.03"),     # 0.025 rounds up
    ("0.15", "10", "0.02"),     # 0.015 rounds up
    ("33.33", "33", "11.00"),   # 10.9989
    ("99.99", "12.5", "12.50"),  # 12.49875
])
def test_half_up_rounding(rate, pct, expected):
    assert compute_deposit(Decimal(rate), Decimal(pct)) == Decimal(expected)


def test_float_inputs_do_not_leak_binary_noise():
    assert compute_referral_fee(0.1, 100) == Decimal("0.10")


@pytest.mark.parametrize("pct", [Decimal("-1"), Decimal("100.01")])
def test_percentage_out_of_range(pct):
    with pytest.raises(ValueError):
        compute_deposit(Decimal("100"), pct)
    with pytest.raises(ValueError):
        compute_referral_fee(Decimal("100"), pct)


def test_negative_amounts_rejected():
    with pytest.raises(ValueError):
        compute_deposit(Decimal("-5"), 30)
    with pytest.raises(ValueError):
        compute_referral_fee(Decimal("-5"), 10)


def test_zero_and_full_percentages():
    assert compute_deposit(Decimal("80"), 0) == Decimal("0.00")
    assert compute_deposit(Decimal("80"), 100) == Decimal("80.00")


def test_effective_fee_prefers_positive_override():
    assert resolve_effective_fee(Decimal("4.50"), Decimal("12")) == Decimal("12.00")


@pytest.mark.parametrize("override", [None, Decimal("0"), Decimal("-3")])
def test_effective_fee_falls_back_to_computed(override):
    assert resolve_effective_fee(Decimal("4.50"), override) == Decimal("4.50")


def test_referral_gate_uses_computed_fee_only():
    assert should_create_referral(Decimal("0.01")) is True
    assert should_create_referral(Decimal("0.00")) is False


def test_to_money_rejects_garbage():
    with pytest.raises(ValueError):
        to_money("not-a-number")
    with pytest.raises(ValueError):
        to_money(Decimal("NaN"))
