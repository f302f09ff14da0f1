"""Decimal helpers for prices and quantities.

Prices are compared after quantizing to the storage scale so a value read back
from a Numeric(12, 4) column always equals the value that was written.

Usage:
    from src.utils.decimal_utils import to_decimal, quantize_price

    price = quantize_price("12.5")      # Decimal('12.5000')
    qty = to_decimal(2)                 # Decimal('2')
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .constants import PRICE_QUANTUM


def to_decimal(value: Any) -> Decimal:
    """Convert int, float, str or Decimal to Decimal.

    Floats go through str() so 0.1 becomes Decimal('0.1'), not its binary
    expansion.

    Raises:
        ValueError: If value is None, not numeric, or not finite
    """
    if value is None:
        raise ValueError("value is required")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a number")
    if not result.is_finite():
        raise ValueError(f"'{value}' is not a finite number")
    return result


def quantize_price(value: Any) -> Decimal:
    """Convert value to Decimal rounded half-up to the price storage scale."""
    return to_decimal(value).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
