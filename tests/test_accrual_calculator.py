"""
Tests for the daily return calculator
"""

import pytest
from decimal import Decimal

from app.services.accrual_calculator import compute_daily_return, quantize_amount, AMOUNT_QUANTUM


def test_daily_return_is_locked_amount_times_rate_percent():
    assert compute_daily_return(Decimal("1000"), Decimal("1.5")) == Decimal("15")
    assert compute_daily_return(Decimal("500"), Decimal("0.25")) == Decimal("1.25")


def test_zero_rate_yields_zero():
    assert compute_daily_return(Decimal("1000"), Decimal("0")) == Decimal("0")


def test_accepts_str_and_int_inputs():
    assert compute_daily_return("1000", 2) == Decimal("20")


def test_rejects_float():
    with pytest.raises(TypeError):
        compute_daily_return(1000.0, Decimal("1.5"))
    with pytest.raises(TypeError):
        quantize_amount(0.1)


def test_quantize_rounds_half_up_to_storage_precision():
    assert quantize_amount(Decimal("0.000000005")) == Decimal("0.00000001")
    assert quantize_amount(Decimal("0.000000004")) == Decimal("0")
    assert quantize_amount(Decimal("15")).as_tuple().exponent == AMOUNT_QUANTUM.as_tuple().exponent


def test_repeated_accrual_does_not_drift():
    # 0.1% of 100.10 is 0.1001 exactly; 1000 days must add up exactly
    daily = quantize_amount(compute_daily_return(Decimal("100.10"), Decimal("0.1")))
    total = sum((daily for _ in range(1000)), Decimal("0"))
    assert daily == Decimal("0.1001")
    assert total == Decimal("100.1")
