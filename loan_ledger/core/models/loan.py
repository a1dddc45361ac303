"""
Loan ledger values.

The engine operates on immutable snapshots: a transition returns a new
``LoanState`` and leaves the input untouched, so a rejected operation can never
leave a half-applied loan behind.

Classes:
    LoanState: Snapshot of one loan's schedule parameters and running balances
    PaymentRecord: One accepted transaction (regular payment or payoff)
    PayoffDetails: Settlement summary emitted when a loan closes
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, Any, Optional

from loan_ledger.core.constants import LoanStatus, PaymentFrequency, PaymentKind, ZERO
from loan_ledger.utils.date_utils import parse_date


def _date_or_none(value) -> Optional[date]:
    return parse_date(value) if value else None


@dataclass(frozen=True)
class LoanState:
    """
    Snapshot of a loan.

    Attributes:
        principal: Original borrowed amount
        annual_interest_rate: Annual rate as percentage
        payment_frequency: How often installments fall due
        compounding_frequency: How often interest compounds
        number_of_payments: Scheduled installments, fixed at creation
        start_date: First day of the loan
        end_date: start_date + number_of_payments payment periods
        payment_amount: Scheduled installment, immutable after creation
        periodic_rate: Effective rate of one payment period
        status: active or paid_off
        amount_paid: Sum of all accepted amounts
        remaining_balance: Principal still owed
        payments_made: Accepted regular payments
        payments_remaining: Scheduled installments not yet made
        next_due_date: Due date of the next installment (None once paid off)
        last_payment_date: Date of the most recent accepted transaction
        total_interest_paid: Interest portion of all accepted amounts
    """

    principal: Decimal
    annual_interest_rate: Decimal
    payment_frequency: PaymentFrequency
    compounding_frequency: PaymentFrequency
    number_of_payments: int
    start_date: date
    end_date: date
    payment_amount: Decimal
    periodic_rate: Decimal
    status: LoanStatus = LoanStatus.ACTIVE
    amount_paid: Decimal = ZERO
    remaining_balance: Optional[Decimal] = None
    payments_made: int = 0
    payments_remaining: Optional[int] = None
    next_due_date: Optional[date] = None
    last_payment_date: Optional[date] = None
    total_interest_paid: Decimal = ZERO

    def __post_init__(self):
        # Fresh loans start with the whole principal outstanding
        if self.remaining_balance is None:
            object.__setattr__(self, "remaining_balance", self.principal)
        if self.payments_remaining is None:
            object.__setattr__(self, "payments_remaining", self.number_of_payments)

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def accrual_anchor(self) -> date:
        """Date from which unpaid interest accrues."""
        return self.last_payment_date or self.start_date

    @property
    def total_with_interest(self) -> Decimal:
        """Scheduled total of all installments."""
        return self.payment_amount * self.number_of_payments

    def evolve(self, **changes) -> "LoanState":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoanState":
        """
        Deserialize state from a dictionary.

        Args:
            data: Mapping of ORM column values or primitives

        Returns:
            LoanState instance
        """
        return cls(
            principal=Decimal(str(data["principal"])),
            annual_interest_rate=Decimal(str(data["annual_interest_rate"])),
            payment_frequency=PaymentFrequency(data["payment_frequency"]),
            compounding_frequency=PaymentFrequency(data["compounding_frequency"]),
            number_of_payments=int(data["number_of_payments"]),
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
            payment_amount=Decimal(str(data["payment_amount"])),
            periodic_rate=Decimal(str(data["periodic_rate"])),
            status=LoanStatus(data.get("status", LoanStatus.ACTIVE)),
            amount_paid=Decimal(str(data.get("amount_paid", ZERO))),
            remaining_balance=(
                Decimal(str(data["remaining_balance"])) if data.get("remaining_balance") is not None else None
            ),
            payments_made=int(data.get("payments_made", 0)),
            payments_remaining=(
                int(data["payments_remaining"]) if data.get("payments_remaining") is not None else None
            ),
            next_due_date=_date_or_none(data.get("next_due_date")),
            last_payment_date=_date_or_none(data.get("last_payment_date")),
            total_interest_paid=Decimal(str(data.get("total_interest_paid", ZERO))),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """
    One accepted transaction.

    ``interest + principal_paid == amount`` always holds. ``unpaid_interest`` is
    the part of the period's interest a short payment did not cover; it is
    reported only and never added to the balance.
    """

    amount: Decimal
    date: date
    interest: Decimal
    principal_paid: Decimal
    balance_after: Decimal
    kind: PaymentKind = PaymentKind.REGULAR
    unpaid_interest: Decimal = ZERO


@dataclass(frozen=True)
class PayoffDetails:
    final_payment: Decimal
    final_interest: Decimal
    total_paid: Decimal
    savings: Decimal
