"""
Tests for interest accrual.
"""

from datetime import date
from decimal import Decimal

import pytest

from loan_ledger.core.engine.accrual import accrue_interest, elapsed_period_rate
from loan_ledger.utils.error_utils import InvalidDate


def test_accrue_interest_rounds_half_up():
    assert accrue_interest(Decimal("1200"), Decimal("0.01")) == Decimal("12.00")
    assert accrue_interest(Decimal("1105.38"), Decimal("0.01")) == Decimal("11.05")
    assert accrue_interest(Decimal("1009.81"), Decimal("0.01")) == Decimal("10.10")
    assert accrue_interest(Decimal("100.50"), Decimal("0.01")) == Decimal("1.01")


def test_accrue_interest_zero_cases():
    assert accrue_interest(Decimal("0"), Decimal("0.01")) == 0
    assert accrue_interest(Decimal("1200"), Decimal("0")) == 0


def test_elapsed_whole_periods():
    rate = elapsed_period_rate(Decimal("0.01"), date(2024, 1, 1), date(2024, 3, 1), "monthly")
    assert rate == Decimal("0.0201")


def test_elapsed_same_day_is_zero():
    assert elapsed_period_rate(Decimal("0.01"), date(2024, 1, 1), date(2024, 1, 1), "monthly") == 0


def test_elapsed_partial_period():
    rate = elapsed_period_rate(Decimal("0.01"), date(2024, 1, 1), date(2024, 1, 16), "monthly")
    assert Decimal("0") < rate < Decimal("0.01")


def test_elapsed_partial_after_whole_periods():
    whole = elapsed_period_rate(Decimal("0.01"), date(2024, 1, 1), date(2024, 2, 1), "monthly")
    partial = elapsed_period_rate(Decimal("0.01"), date(2024, 1, 1), date(2024, 2, 15), "monthly")
    assert whole == Decimal("0.01")
    assert Decimal("0.01") < partial < Decimal("0.0201")


def test_elapsed_quarterly():
    rate = elapsed_period_rate(Decimal("0.03"), date(2024, 1, 1), date(2024, 7, 1), "quarterly")
    assert rate == Decimal("0.0609")


def test_elapsed_month_end_anchor():
    # Jan 31 + 1 month is Feb 29; Feb 29 itself closes exactly one period
    rate = elapsed_period_rate(Decimal("0.01"), date(2024, 1, 31), date(2024, 2, 29), "monthly")
    assert rate == Decimal("0.01")


def test_elapsed_before_anchor():
    with pytest.raises(InvalidDate):
        elapsed_period_rate(Decimal("0.01"), date(2024, 3, 1), date(2024, 2, 1), "monthly")
