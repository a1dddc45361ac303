"""
Utility modules for the loan ledger.

This package contains reusable utility functions for date handling, rate
conversions, money rounding and error handling throughout the application.
"""

from loan_ledger.utils.date_utils import (
    parse_date,
    add_periods,
    validate_not_before,
)

from loan_ledger.utils.rate_utils import (
    annual_pct_to_decimal,
    annual_pct_to_periodic_rate,
    periods_per_year,
    validate_rate_range,
    normalize_rate_input,
    PERCENTAGE_TO_DECIMAL,
)

from loan_ledger.utils.money_utils import (
    to_decimal,
    round_money,
)

from loan_ledger.utils.error_utils import (
    LedgerError,
    InvalidInput,
    InvalidPaymentAmount,
    LoanAlreadyPaidOff,
    InvalidDate,
    Busy,
    LoanNotFound,
    NotAuthorized,
    error_handler,
    logger,
)

__all__ = [
    # Date utilities
    "parse_date",
    "add_periods",
    "validate_not_before",
    # Rate utilities
    "annual_pct_to_decimal",
    "annual_pct_to_periodic_rate",
    "periods_per_year",
    "validate_rate_range",
    "normalize_rate_input",
    "PERCENTAGE_TO_DECIMAL",
    # Money
    "to_decimal",
    "round_money",
    # Error handling
    "LedgerError",
    "InvalidInput",
    "InvalidPaymentAmount",
    "LoanAlreadyPaidOff",
    "InvalidDate",
    "Busy",
    "LoanNotFound",
    "NotAuthorized",
    "error_handler",
    "logger",
]
