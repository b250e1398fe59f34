"""
Accrual calculator - Daily return arithmetic (pure, no I/O)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Storage precision of every money column (Numeric(24, 8))
AMOUNT_QUANTUM = Decimal("0.00000001")

HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Use Decimal (or str) for monetary values, not float")
    return Decimal(str(value))


def compute_daily_return(locked_amount: Number, rate_percent: Number) -> Decimal:
    """
    Compute one day's return: locked_amount * rate_percent / 100.

    Exact decimal arithmetic; a 0 rate yields 0. Range validation of the
    inputs belongs to investment creation, not here.
    """
    return _as_decimal(locked_amount) * _as_decimal(rate_percent) / HUNDRED


def quantize_amount(value: Number) -> Decimal:
    """Round to storage precision (8 decimal places, half-up)"""
    return _as_decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
