"""
Monetary helpers.

Amounts are Decimal throughout and rounded half-up to cents exactly once, at
the end of each calculation. Never use float for ledger arithmetic.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from loan_ledger.core.constants import CENT
from loan_ledger.utils.error_utils import InvalidInput


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Convert user input to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInput(f"'{value}' is not a valid amount")
    if not result.is_finite():
        raise InvalidInput(f"'{value}' is not a valid amount")
    return result


def round_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
