"""
Currency Arithmetic Module

Decimal helpers for USD amounts. NEVER uses float for monetary values:
floats coming in from JSON are converted through their shortest string
representation before any arithmetic happens.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union

# Set global decimal context for financial precision
getcontext().prec = 28

CENTS = Decimal("0.01")

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert a numeric value to Decimal without binary float artifacts

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a monetary amount")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str(0.1) == '0.1', so the float's intended value is kept
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to Decimal")
    if not result.is_finite():
        raise ValueError(f"Amount must be a finite number, got '{value}'")
    return result


def round_currency(value: Numeric) -> Decimal:
    """Round to whole cents using half-up rounding"""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def decimal_places(value: Decimal) -> int:
    """Number of digits after the decimal point"""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def format_usd(value: Numeric) -> str:
    """Format for display, e.g. ``$1,234.50``"""
    amount = round_currency(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
