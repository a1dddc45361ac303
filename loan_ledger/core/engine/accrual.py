"""
Interest accrual.

Pure functions: interest owed on a balance for one payment period, and the
compounded rate for an arbitrary elapsed stretch of periods.
"""

from datetime import date
from decimal import Decimal, localcontext
from typing import Union

from dateutil.relativedelta import relativedelta

from loan_ledger.core.constants import MONTHS_PER_PERIOD, PaymentFrequency, ZERO
from loan_ledger.utils.date_utils import add_periods
from loan_ledger.utils.error_utils import InvalidDate
from loan_ledger.utils.money_utils import round_money

ACCRUAL_PRECISION = 28


def accrue_interest(remaining_balance: Decimal, periodic_rate: Decimal) -> Decimal:
    """
    Interest owed on ``remaining_balance`` for one period at ``periodic_rate``.

    Rounded half-up to cents. A zero balance accrues nothing.
    """
    if remaining_balance <= 0 or periodic_rate <= 0:
        return ZERO
    return round_money(remaining_balance * periodic_rate)


def elapsed_period_rate(
    periodic_rate: Decimal,
    anchor: date,
    as_of: date,
    payment_frequency: Union[PaymentFrequency, str],
) -> Decimal:
    """
    Compounded rate for the payment periods elapsed between two dates.

    Whole periods are counted with calendar-month arithmetic from ``anchor``;
    the remainder is the fraction of days elapsed in the period being entered.
    The result is ``(1 + r) ** (whole + fraction) - 1``.

    Raises:
        InvalidDate: If ``as_of`` precedes ``anchor``
    """
    if as_of < anchor:
        raise InvalidDate(f"Date {as_of.isoformat()} is before {anchor.isoformat()}")
    if periodic_rate == 0 or as_of == anchor:
        return Decimal("0")

    months_per_period = MONTHS_PER_PERIOD[PaymentFrequency(payment_frequency)]
    delta = relativedelta(as_of, anchor)
    whole = (delta.years * 12 + delta.months) // months_per_period
    # relativedelta clamps month ends; settle the estimate against real dates
    while whole > 0 and add_periods(anchor, payment_frequency, whole) > as_of:
        whole -= 1
    while add_periods(anchor, payment_frequency, whole + 1) <= as_of:
        whole += 1

    period_start = add_periods(anchor, payment_frequency, whole)
    period_end = add_periods(anchor, payment_frequency, whole + 1)
    fraction = Decimal((as_of - period_start).days) / Decimal((period_end - period_start).days)

    with localcontext() as ctx:
        ctx.prec = ACCRUAL_PRECISION
        growth = (1 + periodic_rate) ** whole
        if fraction:
            growth *= (1 + periodic_rate) ** fraction
        return growth - 1
