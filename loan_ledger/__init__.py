"""
Loan Ledger - loan schedules, payments and payoffs

Backend for the personal finance client with:
- Level-installment schedules across payment and compounding frequencies
- Per-period interest accrual and early payoff quotes
- Serialized, idempotent payment recording
"""

__version__ = "1.0.0"
__author__ = "Loan Ledger Contributors"
