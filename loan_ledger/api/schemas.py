"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Input validation for API requests
- Response serialization (camelCase keys, money as 2-decimal numbers)
- OpenAPI documentation generation
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional, List, Union

from pydantic import AliasChoices, BaseModel, Field, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from loan_ledger.core.constants import LoanStatus, PaymentFrequency, PaymentKind
from loan_ledger.utils.money_utils import round_money


# Decimal internally, JSON number rounded to cents on the wire
Money = Annotated[Decimal, PlainSerializer(lambda v: float(round_money(v)), return_type=float, when_used="json")]
Percent = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]


# ======================
# Base Schemas
# ======================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode for SQLAlchemy
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
    )


# ======================
# Loan Schemas
# ======================


class LoanCreate(BaseSchema):
    """
    Schema for creating a new loan.

    Range checks on amount, rate and term happen in the schedule calculator so
    they surface as ``InvalidInput``; ``endDate`` is accepted but recomputed.
    """

    title: str = Field(..., min_length=1, max_length=255)
    lender_name: Optional[str] = Field(None, max_length=255)
    amount: Decimal
    # Plain number or a string such as "5.5%"
    interest_rate: Union[Decimal, str]
    start_date: date
    end_date: Optional[date] = None
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    compounding_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    number_of_payments: int
    status: str = LoanStatus.ACTIVE.value
    notes: Optional[str] = None


class LoanResponse(BaseSchema):
    """Schema for loan responses."""

    id: int
    title: str
    lender_name: Optional[str] = None
    notes: Optional[str] = None
    amount: Money = Field(..., validation_alias=AliasChoices("principal", "amount"), serialization_alias="amount")
    interest_rate: Percent = Field(
        ..., validation_alias=AliasChoices("annual_interest_rate", "interestRate"), serialization_alias="interestRate"
    )
    payment_frequency: PaymentFrequency
    compounding_frequency: PaymentFrequency
    number_of_payments: int
    start_date: date
    end_date: date
    payment_amount: Money
    status: LoanStatus
    amount_paid: Money
    remaining_balance: Money
    total_interest_paid: Money
    payments_made: int
    payments_remaining: int
    next_due_date: Optional[date] = None
    last_payment_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoanListResponse(BaseSchema):
    """One page of loans."""

    loans: List[LoanResponse]
    pages: int
    page: int
    total: int


# ======================
# Payment Schemas
# ======================


class PaymentRequest(BaseSchema):
    """Schema for recording a regular payment."""

    payment_amount: Decimal
    payment_date: date


class PayoffRequest(BaseSchema):
    """Schema for paying a loan off early. The date defaults to today."""

    payoff_date: Optional[date] = None


class PaymentDetails(BaseSchema):
    """One accepted transaction as stored in the payment history."""

    id: Optional[int] = None
    kind: PaymentKind
    amount: Money
    payment_date: date
    interest: Money
    principal_paid: Money
    unpaid_interest: Money
    balance_after: Money


class PaymentProgress(BaseSchema):
    original_amount: Money
    total_with_interest: Money
    amount_paid: Money
    amount_remaining: Money
    remaining_balance: Money
    payments_remaining: int


class PayoffDetailsSchema(BaseSchema):
    """Settlement summary emitted when a loan closes."""

    final_payment: Money
    final_interest: Money
    total_paid: Money
    savings: Money


class PaymentResponse(BaseSchema):
    payment_details: PaymentDetails
    payment_progress: PaymentProgress
    payoff_details: Optional[PayoffDetailsSchema] = None


class PayoffResponse(BaseSchema):
    payoff_details: PayoffDetailsSchema
    payment_details: PaymentDetails


class PaymentHistoryResponse(BaseSchema):
    loan_id: int
    payments: List[PaymentDetails]


# ======================
# Schedule Schemas
# ======================


class ScheduleRow(BaseSchema):
    """One projected installment."""

    period: int
    due_date: Optional[date] = None
    payment: Money
    interest_payment: Money
    principal_payment: Money
    balance_after: Money


class ScheduleResponse(BaseSchema):
    loan_id: int
    payment_amount: Money
    projected_payments_remaining: Optional[int] = None
    rows: List[ScheduleRow]


# ======================
# Error Schemas
# ======================


class ErrorResponse(BaseSchema):
    """Schema for error responses."""

    message: str
    suggested_payment: Optional[float] = None
