"""
Ledger configuration from environment variables.

Database settings live in ``loan_ledger.db.connection.DatabaseConfig``; this
module covers the engine and API knobs.
"""

import os
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

from loan_ledger.core.constants import (
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_PAGE_SIZE,
    PAYMENT_TOLERANCE_FACTOR,
)

load_dotenv()


class LedgerSettings:
    """Engine and API settings."""

    def __init__(self):
        self.lock_timeout_seconds = float(
            os.getenv("LOAN_LOCK_TIMEOUT_SECONDS", str(DEFAULT_LOCK_TIMEOUT_SECONDS))
        )
        self.payment_tolerance_factor = Decimal(
            os.getenv("PAYMENT_TOLERANCE_FACTOR", str(PAYMENT_TOLERANCE_FACTOR))
        )
        self.page_size = int(os.getenv("LOANS_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))

        # Bearer token verification; unset means single-user mode
        self.auth_secret_key = os.getenv("AUTH_SECRET_KEY")
        self.auth_algorithm = os.getenv("AUTH_ALGORITHM", "HS256")

        if self.page_size <= 0:
            raise ValueError("LOANS_PAGE_SIZE must be positive")
        if self.payment_tolerance_factor < 1:
            raise ValueError("PAYMENT_TOLERANCE_FACTOR must be at least 1")


@lru_cache(maxsize=1)
def get_settings() -> LedgerSettings:
    """Get the process-wide settings (read once)."""
    return LedgerSettings()
