"""
Database layer for the loan ledger.

Provides the ORM schema and connection management for PostgreSQL or SQLite.
"""

from .connection import db_session, get_db_manager, init_database, get_db_session
from .models import (
    User,
    Loan,
    LoanPayment,
)

__all__ = [
    # Connection utilities
    "db_session",
    "get_db_manager",
    "init_database",
    "get_db_session",
    # Models
    "User",
    "Loan",
    "LoanPayment",
]
