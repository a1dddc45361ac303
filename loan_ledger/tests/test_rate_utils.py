"""
Test suite for rate utilities.
"""

from decimal import Decimal

import pytest

from loan_ledger.utils.error_utils import InvalidInput
from loan_ledger.utils.rate_utils import (
    annual_pct_to_decimal,
    annual_pct_to_periodic_rate,
    normalize_rate_input,
    periods_per_year,
    validate_rate_range,
)


def test_annual_pct_to_decimal():
    """Test percentage to decimal conversion."""
    assert annual_pct_to_decimal(5) == Decimal("0.05")
    assert annual_pct_to_decimal("7.5") == Decimal("0.075")
    assert annual_pct_to_decimal(0) == 0
    assert annual_pct_to_decimal(100) == 1


def test_periods_per_year():
    assert periods_per_year("monthly") == 12
    assert periods_per_year("quarterly") == 4
    assert periods_per_year("half-yearly") == 2
    with pytest.raises(InvalidInput):
        periods_per_year("yearly")


def test_periodic_rate_same_frequency():
    assert annual_pct_to_periodic_rate("12", "monthly", "monthly") == Decimal("0.01")
    assert annual_pct_to_periodic_rate("8", "quarterly", "quarterly") == Decimal("0.02")


def test_periodic_rate_compounds_within_payment_period():
    # Monthly compounding, quarterly payments: 1.01 ** 3 - 1
    assert annual_pct_to_periodic_rate("12", "monthly", "quarterly") == Decimal("0.030301")
    # Quarterly compounding, half-yearly payments: 1.03 ** 2 - 1
    assert annual_pct_to_periodic_rate("12", "quarterly", "half-yearly") == Decimal("0.0609")


def test_periodic_rate_fractional_exponent():
    # Half-yearly compounding, monthly payments: 1.06 ** (1/6) - 1
    rate = annual_pct_to_periodic_rate("12", "half-yearly", "monthly")
    assert round(float(rate), 6) == round(1.06 ** (1 / 6) - 1, 6)


def test_zero_rate():
    assert annual_pct_to_periodic_rate("0", "half-yearly", "monthly") == 0


def test_validate_rate_range():
    """Test rate range validation."""
    assert validate_rate_range(Decimal("5"))
    assert validate_rate_range(Decimal("0"))
    assert validate_rate_range(Decimal("100"))
    assert not validate_rate_range(Decimal("-1"))
    assert not validate_rate_range(Decimal("101"))


def test_normalize_rate_input():
    """Test rate input normalization."""
    assert normalize_rate_input("5.5%") == Decimal("5.5")
    assert normalize_rate_input(" 12 ") == Decimal("12")
    assert normalize_rate_input(3) == Decimal("3")
    assert normalize_rate_input(Decimal("4.25")) == Decimal("4.25")
    assert normalize_rate_input("7.1234") == Decimal("7.1234")
    assert normalize_rate_input("7.50000") == Decimal("7.5")


@pytest.mark.parametrize("raw", ["abc", "150", "-2", "nan", "7.12345", 0.30000000000000004])
def test_normalize_rate_input_invalid(raw):
    with pytest.raises(InvalidInput):
        normalize_rate_input(raw)
