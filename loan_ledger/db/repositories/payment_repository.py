"""
Loan payment repository.

Payments are append-only: there is no update or delete path.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from loan_ledger.core.models.loan import PaymentRecord
from loan_ledger.db.models import LoanPayment
from loan_ledger.db.repositories.base import BaseRepository


class LoanPaymentRepository(BaseRepository[LoanPayment]):
    """Repository for LoanPayment database operations."""

    def __init__(self, session: Session):
        super().__init__(LoanPayment, session)

    def get_by_loan(self, loan_id: int) -> List[LoanPayment]:
        """All payments of a loan in the order they were recorded."""
        return (
            self.session.query(LoanPayment)
            .filter(LoanPayment.loan_id == loan_id)
            .order_by(LoanPayment.id)
            .all()
        )

    def get_by_idempotency_key(self, loan_id: int, idempotency_key: str) -> Optional[LoanPayment]:
        """
        Find a payment previously recorded under a client retry key.

        Args:
            loan_id: Loan ID
            idempotency_key: Client-generated key

        Returns:
            LoanPayment instance or None if not found
        """
        if not idempotency_key:
            return None
        return (
            self.session.query(LoanPayment)
            .filter(LoanPayment.loan_id == loan_id, LoanPayment.idempotency_key == idempotency_key)
            .first()
        )

    def record(
        self,
        loan_id: int,
        payment: PaymentRecord,
        idempotency_key: Optional[str] = None,
        savings: Optional[Decimal] = None,
    ) -> LoanPayment:
        """Persist an accepted engine payment. ``savings`` accompanies a closing payment."""
        return self.create(
            loan_id=loan_id,
            kind=payment.kind.value,
            amount=payment.amount,
            payment_date=payment.date,
            interest=payment.interest,
            principal_paid=payment.principal_paid,
            unpaid_interest=payment.unpaid_interest,
            balance_after=payment.balance_after,
            idempotency_key=idempotency_key,
            savings=savings,
        )
