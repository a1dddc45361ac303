"""
Loan repository for database operations.

Maps between ``Loan`` rows and the engine's immutable ``LoanState`` values and
provides the locked read used by ledger mutations.
"""

import math
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from loan_ledger.core.models.loan import LoanState
from loan_ledger.db.models import Loan
from loan_ledger.db.repositories.base import BaseRepository
from loan_ledger.utils.rate_utils import annual_pct_to_periodic_rate

# Row columns mirrored one-to-one by LoanState
_STATE_COLUMNS = (
    "principal",
    "annual_interest_rate",
    "number_of_payments",
    "start_date",
    "end_date",
    "payment_amount",
    "amount_paid",
    "remaining_balance",
    "payments_made",
    "payments_remaining",
    "next_due_date",
    "last_payment_date",
    "total_interest_paid",
)


class LoanRepository(BaseRepository[Loan]):
    """Repository for Loan database operations."""

    def __init__(self, session: Session):
        """Initialize loan repository."""
        super().__init__(Loan, session)

    def get_for_update(self, loan_id: int) -> Optional[Loan]:
        """
        Get loan by ID, locking the row until the transaction ends.

        ``FOR UPDATE`` is emitted on PostgreSQL; SQLite ignores it and relies
        on the in-process lock registry.
        """
        return (
            self.session.query(Loan)
            .filter(Loan.id == loan_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_page(self, user_id: int, page: int, page_size: int) -> Tuple[List[Loan], int, int]:
        """
        One page of a user's loans.

        Args:
            user_id: Owner
            page: 1-based page number
            page_size: Loans per page

        Returns:
            Tuple of (loans, total_pages, total_loans)
        """
        total = self.count(user_id=user_id)
        pages = max(1, math.ceil(total / page_size))
        loans = self.get_all(user_id=user_id, limit=page_size, offset=(page - 1) * page_size)
        return loans, pages, total

    @staticmethod
    def to_state(loan: Loan) -> LoanState:
        """Build the engine value from a row."""
        data = {column: getattr(loan, column) for column in _STATE_COLUMNS}
        data.update(
            payment_frequency=loan.payment_frequency,
            compounding_frequency=loan.compounding_frequency,
            status=loan.status,
            periodic_rate=annual_pct_to_periodic_rate(
                loan.annual_interest_rate, loan.compounding_frequency, loan.payment_frequency
            ),
        )
        return LoanState.from_dict(data)

    def create_from_state(self, user_id: int, state: LoanState, **descriptive) -> Loan:
        """
        Insert a new loan row from an opened ``LoanState``.

        Args:
            user_id: Owner
            state: Initial engine state
            **descriptive: title, lender_name, notes
        """
        values = {column: getattr(state, column) for column in _STATE_COLUMNS}
        return self.create(
            user_id=user_id,
            payment_frequency=state.payment_frequency.value,
            compounding_frequency=state.compounding_frequency.value,
            status=state.status.value,
            **values,
            **descriptive,
        )

    def apply_state(self, loan: Loan, state: LoanState) -> Loan:
        """Write the running ledger fields of ``state`` back to the row."""
        for column in _STATE_COLUMNS:
            setattr(loan, column, getattr(state, column))
        loan.status = state.status.value
        self.session.flush()
        return loan
