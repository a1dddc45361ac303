"""
Loan ledger engine package.

Modules:
    schedule: Level installment, periodic rate and amortization projection
    accrual: Interest for one period or an elapsed stretch of periods
    ledger: apply_payment / payoff state transitions
    validator: Payment bounds and suggested payments
    locks: Per-loan mutual exclusion
"""

from loan_ledger.core.engine.schedule import (
    Schedule,
    compute_schedule,
    schedule_end_date,
    next_due_date,
    project_schedule,
    projected_interest,
    schedule_residual,
    estimate_remaining_payments,
)
from loan_ledger.core.engine.accrual import accrue_interest, elapsed_period_rate
from loan_ledger.core.engine.ledger import (
    PaymentOutcome,
    PayoffOutcome,
    open_loan,
    apply_payment,
    payoff,
    payoff_quote,
)
from loan_ledger.core.engine.validator import (
    ValidationResult,
    validate_payment,
    ensure_payment_accepted,
)
from loan_ledger.core.engine.locks import LoanLockRegistry, get_lock_registry

__all__ = [
    "Schedule",
    "compute_schedule",
    "schedule_end_date",
    "next_due_date",
    "project_schedule",
    "projected_interest",
    "schedule_residual",
    "estimate_remaining_payments",
    "accrue_interest",
    "elapsed_period_rate",
    "PaymentOutcome",
    "PayoffOutcome",
    "open_loan",
    "apply_payment",
    "payoff",
    "payoff_quote",
    "ValidationResult",
    "validate_payment",
    "ensure_payment_accepted",
    "LoanLockRegistry",
    "get_lock_registry",
]
