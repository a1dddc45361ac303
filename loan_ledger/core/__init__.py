"""
Core modules for the loan ledger.

This package contains the core domain values, constants, and the loan
amortization and payment accounting engine.
"""

from loan_ledger.core.constants import (
    PaymentFrequency,
    LoanStatus,
    PaymentKind,
    PERIODS_PER_YEAR,
    MONTHS_PER_PERIOD,
    PAYMENT_TOLERANCE_FACTOR,
    CENT,
)

__all__ = [
    "PaymentFrequency",
    "LoanStatus",
    "PaymentKind",
    "PERIODS_PER_YEAR",
    "MONTHS_PER_PERIOD",
    "PAYMENT_TOLERANCE_FACTOR",
    "CENT",
]
