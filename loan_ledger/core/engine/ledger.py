"""
Ledger state machine.

States: active -> active (regular payment, balance still owed),
active -> paid_off (balance cleared by a payment or an explicit payoff).
paid_off is terminal.

Transitions are pure: they take a ``LoanState`` and return a new one together
with the records the caller must persist. Any failure raises before a new
state exists, so the stored loan is never partially updated.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from loan_ledger.core.constants import (
    LoanStatus,
    PaymentFrequency,
    PaymentKind,
    ROUNDING_DRIFT_PER_PERIOD,
    ZERO,
)
from loan_ledger.core.engine.accrual import accrue_interest, elapsed_period_rate
from loan_ledger.core.engine.schedule import (
    compute_schedule,
    next_due_date,
    projected_interest,
    schedule_end_date,
    schedule_residual,
)
from loan_ledger.core.models.loan import LoanState, PaymentRecord, PayoffDetails
from loan_ledger.utils.date_utils import parse_date, validate_not_before
from loan_ledger.utils.error_utils import InvalidPaymentAmount, LoanAlreadyPaidOff
from loan_ledger.utils.money_utils import round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentOutcome:
    payment: PaymentRecord
    loan: LoanState
    payoff_details: Optional[PayoffDetails] = None


@dataclass(frozen=True)
class PayoffOutcome:
    payoff_details: PayoffDetails
    loan: LoanState
    payment: PaymentRecord


def open_loan(
    principal: Union[Decimal, str, float],
    annual_interest_rate: Union[Decimal, str, float],
    payment_frequency: Union[PaymentFrequency, str],
    compounding_frequency: Union[PaymentFrequency, str],
    number_of_payments: int,
    start_date: Union[date, str],
) -> LoanState:
    """
    Create the initial state of a loan, running the schedule calculator.

    The first installment falls due one payment period after ``start_date``.
    """
    principal = round_money(principal)
    annual_interest_rate = to_decimal(annual_interest_rate)
    payment_frequency = PaymentFrequency(payment_frequency)
    compounding_frequency = PaymentFrequency(compounding_frequency)
    start_date = parse_date(start_date)

    schedule = compute_schedule(
        principal, annual_interest_rate, compounding_frequency, payment_frequency, number_of_payments
    )
    return LoanState(
        principal=principal,
        annual_interest_rate=annual_interest_rate,
        payment_frequency=payment_frequency,
        compounding_frequency=compounding_frequency,
        number_of_payments=int(number_of_payments),
        start_date=start_date,
        end_date=schedule_end_date(start_date, payment_frequency, int(number_of_payments)),
        payment_amount=schedule.payment_amount,
        periodic_rate=schedule.periodic_rate,
        next_due_date=next_due_date(start_date, payment_frequency),
    )


def _ensure_active(loan: LoanState) -> None:
    if not loan.is_active:
        raise LoanAlreadyPaidOff("Loan is already paid off")


def _ensure_date(loan: LoanState, when: date) -> None:
    validate_not_before(when, loan.start_date, "loan start date")
    validate_not_before(when, loan.last_payment_date, "last recorded payment")


def _remaining_schedule_interest(loan: LoanState) -> Decimal:
    """Interest the untouched schedule would still charge from here."""
    return projected_interest(
        loan.remaining_balance,
        loan.periodic_rate,
        loan.payment_amount,
        max(loan.payments_remaining, 1),
    )


def _rounding_allowance(loan: LoanState) -> Decimal:
    """Residual a borrower paying every installment on time would be left with."""
    residual = schedule_residual(loan.principal, loan.periodic_rate, loan.payment_amount, loan.number_of_payments)
    return max(residual, ROUNDING_DRIFT_PER_PERIOD * loan.number_of_payments)


def apply_payment(loan: LoanState, amount: Union[Decimal, str, float], payment_date: Union[date, str]) -> PaymentOutcome:
    """
    Apply one payment: accrue a period of interest, split, reduce the balance.

    A payment smaller than the interest owed is attributed entirely to
    interest; the uncovered remainder is reported as ``unpaid_interest`` and
    is not added to the balance.

    Raises:
        LoanAlreadyPaidOff: If the loan is closed
        InvalidPaymentAmount: If the amount is not positive
        InvalidDate: If the date precedes the start or the last payment
    """
    _ensure_active(loan)
    amount = round_money(amount)
    if amount <= 0:
        raise InvalidPaymentAmount("Payment amount must be greater than 0")
    payment_date = parse_date(payment_date)
    _ensure_date(loan, payment_date)

    balance_before = loan.remaining_balance
    interest_owed = accrue_interest(balance_before, loan.periodic_rate)

    if amount < interest_owed:
        interest = amount
        unpaid_interest = interest_owed - amount
    else:
        interest = interest_owed
        unpaid_interest = ZERO
    principal_paid = amount - interest

    balance_after = max(balance_before - principal_paid, ZERO)

    # The last installment absorbs the residual of the rounded installment
    is_final_installment = loan.payments_remaining <= 1
    if is_final_installment and 0 < balance_after <= _rounding_allowance(loan):
        logger.info(f"Absorbing rounding residual {balance_after} on final installment")
        balance_after = ZERO

    payment = PaymentRecord(
        amount=amount,
        date=payment_date,
        interest=interest,
        principal_paid=principal_paid,
        balance_after=balance_after,
        kind=PaymentKind.REGULAR,
        unpaid_interest=unpaid_interest,
    )

    amount_paid = loan.amount_paid + amount
    common = dict(
        amount_paid=amount_paid,
        remaining_balance=balance_after,
        payments_made=loan.payments_made + 1,
        last_payment_date=payment_date,
        total_interest_paid=loan.total_interest_paid + interest,
    )

    if balance_after == 0:
        savings = max(_remaining_schedule_interest(loan) - interest, ZERO)
        details = PayoffDetails(
            final_payment=amount,
            final_interest=interest,
            total_paid=amount_paid,
            savings=savings,
        )
        updated = loan.evolve(
            status=LoanStatus.PAID_OFF,
            payments_remaining=0,
            next_due_date=None,
            **common,
        )
        logger.info(f"Payment of {amount} cleared the loan; total paid {amount_paid}")
        return PaymentOutcome(payment=payment, loan=updated, payoff_details=details)

    updated = loan.evolve(
        payments_remaining=max(loan.payments_remaining - 1, 0),
        next_due_date=next_due_date(loan.next_due_date or loan.start_date, loan.payment_frequency),
        **common,
    )
    if unpaid_interest > 0:
        logger.warning(f"Payment of {amount} left {unpaid_interest} interest uncovered")
    logger.info(f"Applied payment of {amount}: interest {interest}, principal {principal_paid}, balance {balance_after}")
    return PaymentOutcome(payment=payment, loan=updated)


def payoff_quote(loan: LoanState, as_of: Union[date, str]) -> Decimal:
    """Interest accrued from the last payment (or start) to ``as_of``."""
    as_of = parse_date(as_of)
    rate = elapsed_period_rate(loan.periodic_rate, loan.accrual_anchor, as_of, loan.payment_frequency)
    return accrue_interest(loan.remaining_balance, rate)


def payoff(loan: LoanState, as_of: Union[date, str]) -> PayoffOutcome:
    """
    Settle the loan early: remaining balance plus interest accrued to ``as_of``.

    ``savings`` is the interest the untouched schedule would still have charged
    over the remaining periods, minus the final interest actually charged,
    floored at zero.

    Raises:
        LoanAlreadyPaidOff: If the loan is closed
        InvalidDate: If ``as_of`` precedes the start or the last payment
    """
    _ensure_active(loan)
    as_of = parse_date(as_of)
    _ensure_date(loan, as_of)

    balance = loan.remaining_balance
    final_interest = payoff_quote(loan, as_of)
    final_payment = balance + final_interest
    savings = max(_remaining_schedule_interest(loan) - final_interest, ZERO)
    total_paid = loan.amount_paid + final_payment

    details = PayoffDetails(
        final_payment=final_payment,
        final_interest=final_interest,
        total_paid=total_paid,
        savings=savings,
    )
    payment = PaymentRecord(
        amount=final_payment,
        date=as_of,
        interest=final_interest,
        principal_paid=balance,
        balance_after=ZERO,
        kind=PaymentKind.PAYOFF,
    )
    updated = loan.evolve(
        status=LoanStatus.PAID_OFF,
        amount_paid=total_paid,
        remaining_balance=ZERO,
        payments_remaining=0,
        next_due_date=None,
        last_payment_date=as_of,
        total_interest_paid=loan.total_interest_paid + final_interest,
    )
    logger.info(f"Loan paid off on {as_of.isoformat()}: final payment {final_payment}, savings {savings}")
    return PayoffOutcome(payoff_details=details, loan=updated, payment=payment)
