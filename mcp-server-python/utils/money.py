"""Decimal helpers for line item amounts and job totals."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Optional[Decimal]:
    """
    Convert an amount to a Decimal, or None if it is not a finite number.

    Floats go through ``str`` so 250.5 becomes Decimal('250.5') rather than
    its binary expansion. Booleans are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not amount.is_finite():
        return None
    return amount


def quantize_amount(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_stored_amount(value) -> Decimal:
    """Amounts are stored as decimal TEXT; missing values count as zero."""
    amount = to_decimal(value)
    return quantize_amount(amount) if amount is not None else ZERO


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    return quantize_amount(sum(amounts, ZERO))


def format_amount(amount: Decimal) -> str:
    """Storage form of an amount: '350.50'."""
    return str(quantize_amount(amount))
