"""
Loan API endpoints.

Provides REST API for creating loans, recording payments and paying loans off.
Mutations run under the loan's lock: read with FOR UPDATE, apply the ledger
transition, persist and commit before the lock is released.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.orm import Session

from loan_ledger.api.auth import get_current_user
from loan_ledger.api.schemas import (
    ErrorResponse,
    LoanCreate,
    LoanListResponse,
    LoanResponse,
    PaymentDetails,
    PaymentHistoryResponse,
    PaymentProgress,
    PaymentRequest,
    PaymentResponse,
    PayoffDetailsSchema,
    PayoffRequest,
    PayoffResponse,
    ScheduleResponse,
    ScheduleRow,
)
from loan_ledger.core.config import get_settings
from loan_ledger.core.constants import LoanStatus, ZERO
from loan_ledger.core.engine import (
    apply_payment,
    ensure_payment_accepted,
    estimate_remaining_payments,
    get_lock_registry,
    open_loan,
    payoff,
    project_schedule,
)
from loan_ledger.core.models.loan import LoanState
from loan_ledger.db.connection import get_db_session
from loan_ledger.db.models import Loan, LoanPayment, User
from loan_ledger.db.repositories import LoanPaymentRepository, LoanRepository
from loan_ledger.utils.error_utils import InvalidInput, LedgerError, LoanNotFound, NotAuthorized
from loan_ledger.utils.rate_utils import normalize_rate_input


logger = logging.getLogger("loan_ledger")

router = APIRouter()

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}
_MUTATION_RESPONSES = {
    **_ERROR_RESPONSES,
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _owned_loan(repo: LoanRepository, loan_id: int, user: User, for_update: bool = False) -> Loan:
    loan = repo.get_for_update(loan_id) if for_update else repo.get_by_id(loan_id)
    if not loan:
        raise LoanNotFound(f"Loan {loan_id} not found")
    if loan.user_id != user.id:
        raise NotAuthorized("Not authorized to access this loan")
    return loan


def _progress(state: LoanState) -> PaymentProgress:
    total_with_interest = state.total_with_interest
    return PaymentProgress(
        original_amount=state.principal,
        total_with_interest=total_with_interest,
        amount_paid=state.amount_paid,
        amount_remaining=ZERO if not state.is_active else max(total_with_interest - state.amount_paid, ZERO),
        remaining_balance=state.remaining_balance,
        payments_remaining=state.payments_remaining,
    )


def _closing_details(row: LoanPayment, state: LoanState) -> Optional[PayoffDetailsSchema]:
    """Payoff summary for the transaction that closed the loan, if ``row`` is it."""
    if row.savings is None:
        return None
    return PayoffDetailsSchema(
        final_payment=row.amount,
        final_interest=row.interest,
        total_paid=state.amount_paid,
        savings=row.savings,
    )


@router.post(
    "",
    response_model=LoanResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
def create_loan(
    loan: LoanCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    if loan.status != LoanStatus.ACTIVE.value:
        raise InvalidInput(f"New loans must be '{LoanStatus.ACTIVE.value}', got '{loan.status}'")

    state = open_loan(
        principal=loan.amount,
        annual_interest_rate=normalize_rate_input(loan.interest_rate),
        payment_frequency=loan.payment_frequency,
        compounding_frequency=loan.compounding_frequency,
        number_of_payments=loan.number_of_payments,
        start_date=loan.start_date,
    )
    if loan.end_date and loan.end_date != state.end_date:
        logger.info(f"Supplied end date {loan.end_date} replaced by computed {state.end_date}")

    repo = LoanRepository(db)
    try:
        new_loan = repo.create_from_state(
            current_user.id,
            state,
            title=loan.title,
            lender_name=loan.lender_name,
            notes=loan.notes,
        )
        db.commit()
        db.refresh(new_loan)
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created loan {new_loan.id} for user {current_user.id}: installment {state.payment_amount}")
    return LoanResponse.model_validate(new_loan)


@router.get("", response_model=LoanListResponse)
def list_loans(
    page: int = Query(1, ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    repo = LoanRepository(db)
    loans, pages, total = repo.list_page(current_user.id, page, get_settings().page_size)
    return LoanListResponse(
        loans=[LoanResponse.model_validate(loan) for loan in loans],
        pages=pages,
        page=page,
        total=total,
    )


@router.get("/{loan_id}", response_model=LoanResponse, responses=_ERROR_RESPONSES)
def get_loan(
    loan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    loan = _owned_loan(LoanRepository(db), loan_id, current_user)
    return LoanResponse.model_validate(loan)


@router.get("/{loan_id}/payments", response_model=PaymentHistoryResponse, responses=_ERROR_RESPONSES)
def list_payments(
    loan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    _owned_loan(LoanRepository(db), loan_id, current_user)
    rows = LoanPaymentRepository(db).get_by_loan(loan_id)
    return PaymentHistoryResponse(
        loan_id=loan_id,
        payments=[PaymentDetails.model_validate(row) for row in rows],
    )


@router.get("/{loan_id}/schedule", response_model=ScheduleResponse, responses=_ERROR_RESPONSES)
def get_schedule(
    loan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Remaining amortization table if every future installment is paid as scheduled."""
    loan = _owned_loan(LoanRepository(db), loan_id, current_user)
    state = LoanRepository.to_state(loan)

    table = project_schedule(
        state.remaining_balance,
        state.periodic_rate,
        state.payment_amount,
        state.payments_remaining,
        first_due_date=state.next_due_date,
        payment_frequency=state.payment_frequency,
    )
    rows = [
        ScheduleRow(
            period=int(row.period),
            due_date=row.date,
            payment=row.payment,
            interest_payment=row.interest_payment,
            principal_payment=row.principal_payment,
            balance_after=row.value,
        )
        for row in table.itertuples(index=False)
    ]
    return ScheduleResponse(
        loan_id=loan_id,
        payment_amount=state.payment_amount,
        projected_payments_remaining=estimate_remaining_payments(
            state.remaining_balance, state.periodic_rate, state.payment_amount
        ),
        rows=rows,
    )


@router.post("/{loan_id}/payment", response_model=PaymentResponse, responses=_MUTATION_RESPONSES)
def record_payment(
    loan_id: int,
    payment: PaymentRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """
    Record a regular payment.

    A retry carrying an ``Idempotency-Key`` already recorded on this loan
    returns the stored payment instead of applying it twice.
    """
    loans = LoanRepository(db)
    payments = LoanPaymentRepository(db)

    with get_lock_registry().hold(loan_id):
        try:
            loan = _owned_loan(loans, loan_id, current_user, for_update=True)
            state = loans.to_state(loan)

            existing = payments.get_by_idempotency_key(loan_id, idempotency_key)
            if existing is not None:
                logger.info(f"Replaying payment {existing.id} on loan {loan_id} for key {idempotency_key}")
                replay = PaymentResponse(
                    payment_details=PaymentDetails.model_validate(existing),
                    payment_progress=_progress(state),
                    payoff_details=_closing_details(existing, state),
                )
                db.rollback()
                return replay

            amount = ensure_payment_accepted(state, payment.payment_amount, get_settings().payment_tolerance_factor)
            outcome = apply_payment(state, amount, payment.payment_date)

            loans.apply_state(loan, outcome.loan)
            row = payments.record(
                loan_id,
                outcome.payment,
                idempotency_key=idempotency_key,
                savings=outcome.payoff_details.savings if outcome.payoff_details else None,
            )
            db.commit()
        except LedgerError:
            db.rollback()
            raise
        except Exception:
            db.rollback()
            logger.exception(f"Failed to record payment on loan {loan_id}")
            raise

    return PaymentResponse(
        payment_details=PaymentDetails.model_validate(row),
        payment_progress=_progress(outcome.loan),
        payoff_details=_closing_details(row, outcome.loan),
    )


@router.post("/{loan_id}/payoff", response_model=PayoffResponse, responses=_MUTATION_RESPONSES)
def payoff_loan(
    loan_id: int,
    request: Optional[PayoffRequest] = None,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db_session),
):
    """Settle the remaining balance plus interest accrued to the payoff date (default today)."""
    as_of = (request.payoff_date if request else None) or date.today()
    loans = LoanRepository(db)
    payments = LoanPaymentRepository(db)

    with get_lock_registry().hold(loan_id):
        try:
            loan = _owned_loan(loans, loan_id, current_user, for_update=True)
            state = loans.to_state(loan)

            existing = payments.get_by_idempotency_key(loan_id, idempotency_key)
            if existing is not None:
                if existing.savings is None:
                    raise InvalidInput(f"Idempotency key {idempotency_key} was already used for a regular payment")
                logger.info(f"Replaying payoff of loan {loan_id} for key {idempotency_key}")
                replay = PayoffResponse(
                    payoff_details=_closing_details(existing, state),
                    payment_details=PaymentDetails.model_validate(existing),
                )
                db.rollback()
                return replay

            outcome = payoff(state, as_of)

            loans.apply_state(loan, outcome.loan)
            row = payments.record(
                loan_id,
                outcome.payment,
                idempotency_key=idempotency_key,
                savings=outcome.payoff_details.savings,
            )
            db.commit()
        except LedgerError:
            db.rollback()
            raise
        except Exception:
            db.rollback()
            logger.exception(f"Failed to pay off loan {loan_id}")
            raise

    return PayoffResponse(
        payoff_details=_closing_details(row, outcome.loan),
        payment_details=PaymentDetails.model_validate(row),
    )
