"""
Payment validator.

Bounds a requested regular payment against the current balance. An oversized
request is not clamped silently: it is rejected with the amount a payoff would
actually need, steering the caller to the payoff endpoint.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from loan_ledger.core.constants import PAYMENT_TOLERANCE_FACTOR
from loan_ledger.core.engine.accrual import accrue_interest
from loan_ledger.core.models.loan import LoanState
from loan_ledger.utils.error_utils import InvalidPaymentAmount, LoanAlreadyPaidOff
from loan_ledger.utils.money_utils import round_money, to_decimal


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    suggested_payment: Optional[Decimal] = None


def projected_final_interest(loan: LoanState) -> Decimal:
    return accrue_interest(loan.remaining_balance, loan.periodic_rate)


def validate_payment(
    loan: LoanState,
    requested_amount: Union[Decimal, str, float],
    tolerance_factor: Decimal = PAYMENT_TOLERANCE_FACTOR,
) -> ValidationResult:
    """
    Check a requested payment amount.

    Accepted when ``0 < amount <= remaining_balance * tolerance_factor``.
    Above the band the result carries ``suggested_payment``: the remaining
    balance plus one period of interest.

    Raises:
        InvalidPaymentAmount: If the amount is zero or negative
        LoanAlreadyPaidOff: If the loan is closed
    """
    if not loan.is_active:
        raise LoanAlreadyPaidOff("Loan is already paid off")

    amount = to_decimal(requested_amount)
    if amount <= 0:
        raise InvalidPaymentAmount("Payment amount must be greater than 0")

    if amount > loan.remaining_balance * tolerance_factor:
        suggested = round_money(loan.remaining_balance + projected_final_interest(loan))
        return ValidationResult(accepted=False, suggested_payment=suggested)

    return ValidationResult(accepted=True)


def ensure_payment_accepted(
    loan: LoanState,
    requested_amount: Union[Decimal, str, float],
    tolerance_factor: Decimal = PAYMENT_TOLERANCE_FACTOR,
) -> Decimal:
    """
    Validate and return the amount, or raise with a corrective suggestion.

    Raises:
        InvalidPaymentAmount: Carrying ``suggested_payment`` when oversized
    """
    result = validate_payment(loan, requested_amount, tolerance_factor)
    if not result.accepted:
        raise InvalidPaymentAmount(
            f"Payment exceeds the remaining balance. Pay off the loan with "
            f"{result.suggested_payment} instead",
            suggested_payment=result.suggested_payment,
        )
    return to_decimal(requested_amount)
