"""
Loan ledger core models package.

Modules:
    loan: LoanState, PaymentRecord, PayoffDetails
"""

from loan_ledger.core.models.loan import (
    LoanState,
    PaymentRecord,
    PayoffDetails,
)

__all__ = [
    "LoanState",
    "PaymentRecord",
    "PayoffDetails",
]
