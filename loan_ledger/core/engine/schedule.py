"""
Schedule calculator.

Derives the level installment of a loan from its principal, annual rate,
compounding and payment frequencies and term, and projects the remaining
amortization table. All arithmetic is Decimal in a fixed context, with money
rounded half-up to cents once at the end, so results reproduce exactly.
"""

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext
from typing import Optional, Union

import numpy as np
import numpy_financial as npf
import pandas as pd

from loan_ledger.core.constants import CENT, PaymentFrequency, ZERO
from loan_ledger.core.engine.accrual import accrue_interest
from loan_ledger.utils.date_utils import add_periods
from loan_ledger.utils.error_utils import InvalidInput
from loan_ledger.utils.money_utils import round_money, to_decimal
from loan_ledger.utils.rate_utils import annual_pct_to_periodic_rate

# Fixed working precision for schedule math
SCHEDULE_PRECISION = 28

SCHEDULE_COLUMNS = ["period", "date", "payment", "interest_payment", "principal_payment", "value"]


@dataclass(frozen=True)
class Schedule:
    payment_amount: Decimal
    periodic_rate: Decimal


def compute_schedule(
    principal: Union[Decimal, str, float],
    annual_rate: Union[Decimal, str, float],
    compounding_frequency: Union[PaymentFrequency, str],
    payment_frequency: Union[PaymentFrequency, str],
    number_of_payments: int,
) -> Schedule:
    """
    Compute the level periodic payment of an amortizing loan.

    Args:
        principal: Borrowed amount (> 0)
        annual_rate: Annual interest rate as percentage (>= 0)
        compounding_frequency: monthly, quarterly or half-yearly
        payment_frequency: monthly, quarterly or half-yearly
        number_of_payments: Scheduled installments (> 0)

    Returns:
        Schedule with the rounded payment amount and the unrounded periodic rate

    Raises:
        InvalidInput: On non-positive principal or term, or negative rate
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)

    if isinstance(number_of_payments, bool) or int(number_of_payments) != number_of_payments:
        raise InvalidInput(f"Number of payments must be a whole number, got {number_of_payments}")
    number_of_payments = int(number_of_payments)

    if number_of_payments <= 0:
        raise InvalidInput("Number of payments must be greater than 0")
    if principal <= 0:
        raise InvalidInput("Principal must be greater than 0")
    if annual_rate < 0:
        raise InvalidInput("Annual interest rate cannot be negative")

    with localcontext() as ctx:
        ctx.prec = SCHEDULE_PRECISION
        periodic_rate = annual_pct_to_periodic_rate(annual_rate, compounding_frequency, payment_frequency)

        if periodic_rate == 0:
            payment = principal / number_of_payments
        else:
            payment = principal * periodic_rate / (1 - (1 + periodic_rate) ** -number_of_payments)

        # +0 applies the context precision to the stored rate
        periodic_rate = +periodic_rate

    return Schedule(payment_amount=round_money(payment), periodic_rate=periodic_rate)


def schedule_end_date(start: date, payment_frequency: Union[PaymentFrequency, str], number_of_payments: int) -> date:
    """Date of the last scheduled installment."""
    return add_periods(start, payment_frequency, number_of_payments)


def next_due_date(current: date, payment_frequency: Union[PaymentFrequency, str], periods: int = 1) -> date:
    """Advance a due date by whole payment periods."""
    return add_periods(current, payment_frequency, periods)


def project_schedule(
    balance: Decimal,
    periodic_rate: Decimal,
    payment_amount: Decimal,
    periods: int,
    first_due_date: Optional[date] = None,
    payment_frequency: Union[PaymentFrequency, str] = PaymentFrequency.MONTHLY,
) -> pd.DataFrame:
    """
    Project the remaining amortization table with no extra payments.

    Each row accrues one period of interest on the running balance and applies
    the scheduled installment. The last period (or any period where the
    installment would overshoot) settles the balance exactly.

    Args:
        balance: Principal outstanding at the start of the projection
        periodic_rate: Effective rate of one payment period
        payment_amount: Scheduled installment
        periods: Number of installments left
        first_due_date: Due date of the first projected installment
        payment_frequency: Spacing of the projected dates

    Returns:
        DataFrame with columns: period, date, payment, interest_payment, principal_payment, value
    """
    rows = []
    remaining = balance
    for period in range(1, max(periods, 0) + 1):
        if remaining <= 0:
            break
        interest = accrue_interest(remaining, periodic_rate)
        principal_payment = payment_amount - interest
        if period == periods or principal_payment >= remaining:
            principal_payment = remaining
        principal_payment = max(principal_payment, ZERO)
        remaining = remaining - principal_payment
        rows.append(
            {
                "period": period,
                "date": next_due_date(first_due_date, payment_frequency, period - 1) if first_due_date else None,
                "payment": interest + principal_payment,
                "interest_payment": interest,
                "principal_payment": principal_payment,
                "value": remaining,
            }
        )

    return pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)


def projected_interest(
    balance: Decimal,
    periodic_rate: Decimal,
    payment_amount: Decimal,
    periods: int,
) -> Decimal:
    """Interest that would accrue over the remaining schedule."""
    table = project_schedule(balance, periodic_rate, payment_amount, periods)
    if table.empty:
        return ZERO
    return round_money(sum(table["interest_payment"], ZERO))


def schedule_residual(
    principal: Decimal,
    periodic_rate: Decimal,
    payment_amount: Decimal,
    periods: int,
) -> Decimal:
    """
    Balance the rounded installment leaves unpaid at the end of the term.

    ``payment_amount`` is rounded to cents, and the rounding error compounds
    at ``periodic_rate`` over the term. Paying every installment on schedule
    leaves this amount on the final period. Zero when the rounded
    installment overpays.
    """
    table = project_schedule(principal, periodic_rate, payment_amount, periods)
    if len(table) < periods:
        return ZERO
    return max(table["payment"].iloc[-1] - payment_amount, ZERO)


def estimate_remaining_payments(
    balance: Decimal,
    periodic_rate: Decimal,
    payment_amount: Decimal,
) -> Optional[int]:
    """
    Installments of ``payment_amount`` needed to clear ``balance``.

    A larger-than-scheduled payment shortens the term; this is the term the
    client shows. Returns None when the installment never covers the interest.
    """
    if balance <= 0:
        return 0
    if payment_amount <= 0:
        return None
    if periodic_rate == 0:
        return math.ceil(balance / payment_amount)
    if accrue_interest(balance, periodic_rate) >= payment_amount:
        return None

    periods = npf.nper(float(periodic_rate), -float(payment_amount), float(balance))
    if not np.isfinite(periods):
        return None
    # Cent-level float noise must not add a whole period
    return max(1, math.ceil(float(periods) - float(CENT)))
