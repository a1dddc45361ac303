"""
Database repository layer.

Provides data access patterns using the Repository Pattern.
"""

from loan_ledger.db.repositories.base import BaseRepository
from loan_ledger.db.repositories.loan_repository import LoanRepository
from loan_ledger.db.repositories.payment_repository import LoanPaymentRepository

__all__ = [
    "BaseRepository",
    "LoanRepository",
    "LoanPaymentRepository",
]
