"""
Core constants and enumerations for the loan ledger.

This module defines all constant values, enumerations, and fixed parameters
used throughout the amortization and payment accounting engine.
"""

from decimal import Decimal
from enum import Enum


class PaymentFrequency(str, Enum):
    """Payment and compounding frequencies accepted by the client."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"


class LoanStatus(str, Enum):
    """Loan lifecycle states. PAID_OFF is terminal."""

    ACTIVE = "active"
    PAID_OFF = "paid_off"


class PaymentKind(str, Enum):
    REGULAR = "regular"
    PAYOFF = "payoff"


PERIODS_PER_YEAR = {
    PaymentFrequency.MONTHLY: 12,
    PaymentFrequency.QUARTERLY: 4,
    PaymentFrequency.HALF_YEARLY: 2,
}

# Calendar months spanned by one period
MONTHS_PER_PERIOD = {frequency: 12 // count for frequency, count in PERIODS_PER_YEAR.items()}

# Money
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Accepted regular payments may exceed the balance by this factor
PAYMENT_TOLERANCE_FACTOR = Decimal("1.1")

# Residual balance absorbed per scheduled period on the final scheduled payment
ROUNDING_DRIFT_PER_PERIOD = CENT

DEFAULT_PAGE_SIZE = 10
DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0
