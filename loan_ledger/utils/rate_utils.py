"""
Rate conversion utilities for loan calculations.

This module provides standardized functions for converting between the rate
formats used throughout the ledger.

Conventions:
- All user inputs are annual rates as percentages (e.g., 12.0 = 12%)
- All calculations use Decimal rates (e.g., 0.12 = 12%)
- Per-period rates are derived through compounding, never by plain division
  unless compounding and payment frequencies coincide
- Variable naming: *_rate_annual_pct, periodic_rate, etc.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from loan_ledger.core.constants import PERIODS_PER_YEAR, PaymentFrequency
from loan_ledger.utils.error_utils import error_handler, InvalidInput

PERCENTAGE_TO_DECIMAL = Decimal("100")

# Matches the stored precision of loans.annual_interest_rate
RATE_QUANTUM = Decimal("0.0001")


@error_handler
def annual_pct_to_decimal(rate_pct: Union[Decimal, float, str]) -> Decimal:
    """
    Convert annual percentage rate to decimal format.

    Examples:
        >>> annual_pct_to_decimal("12")
        Decimal('0.12')
    """
    return Decimal(str(rate_pct)) / PERCENTAGE_TO_DECIMAL


@error_handler
def periods_per_year(frequency: Union[PaymentFrequency, str]) -> int:
    """
    Number of periods in a year for a payment or compounding frequency.

    Raises:
        InvalidInput: If the frequency is not monthly, quarterly or half-yearly
    """
    try:
        return PERIODS_PER_YEAR[PaymentFrequency(frequency)]
    except ValueError:
        raise InvalidInput(f"Unsupported frequency '{frequency}'")


@error_handler
def annual_pct_to_periodic_rate(
    rate_pct: Union[Decimal, float, str],
    compounding_frequency: Union[PaymentFrequency, str],
    payment_frequency: Union[PaymentFrequency, str],
) -> Decimal:
    """
    Convert an annual percentage rate into the effective rate of one payment period.

    periodic_rate = (1 + annual/100/m) ** (m/p) - 1

    where m is the number of compounding periods and p the number of payment
    periods per year.

    Examples:
        >>> annual_pct_to_periodic_rate("12", "monthly", "monthly")
        Decimal('0.01')
    """
    m = periods_per_year(compounding_frequency)
    p = periods_per_year(payment_frequency)
    rate_per_compounding = annual_pct_to_decimal(rate_pct) / m
    if rate_per_compounding == 0:
        return Decimal("0")
    if m == p:
        return rate_per_compounding
    if m % p == 0:
        # integral exponent keeps the power exact
        return (1 + rate_per_compounding) ** (m // p) - 1
    return (1 + rate_per_compounding) ** (Decimal(m) / Decimal(p)) - 1


@error_handler
def validate_rate_range(rate_pct: Decimal, min_pct: Decimal = Decimal("0"), max_pct: Decimal = Decimal("100")) -> bool:
    """
    Validate that a percentage rate is within reasonable bounds.

    Examples:
        >>> validate_rate_range(Decimal("5"))
        True
        >>> validate_rate_range(Decimal("-1"))
        False
    """
    return min_pct <= rate_pct <= max_pct


@error_handler
def normalize_rate_input(rate_input: Union[str, float, int, Decimal]) -> Decimal:
    """
    Normalize rate input from various formats to a Decimal percentage.

    Handles string inputs and removes percentage signs.

    Raises:
        InvalidInput: If rate cannot be converted, is out of range or is
            more precise than 4 decimal places

    Examples:
        >>> normalize_rate_input("5.5%")
        Decimal('5.5')
    """
    if isinstance(rate_input, str):
        cleaned = rate_input.strip().rstrip("%").strip()
    else:
        cleaned = str(rate_input)
    try:
        rate = Decimal(cleaned)
    except InvalidOperation:
        raise InvalidInput(f"Cannot convert rate input '{rate_input}' to number")

    if not rate.is_finite() or not validate_rate_range(rate):
        raise InvalidInput(f"Rate {rate_input}% is outside valid range (0% to 100%)")
    if rate != rate.quantize(RATE_QUANTUM):
        raise InvalidInput(f"Rate {rate_input}% has more than 4 decimal places")

    return rate
