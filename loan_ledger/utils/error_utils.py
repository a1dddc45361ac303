"""
Error handling utilities for the loan ledger.

This module provides centralized error handling and logging for the service.
It defines the ledger exception taxonomy and a decorator for consistent error
reporting across the utility and engine layers.
"""

import os
import traceback
import logging
from functools import wraps
import sys
from datetime import datetime

# Configure logging; the file handler is opt-in (read-only filesystems on serverless)
_handlers = [logging.StreamHandler(sys.stdout)]
if os.getenv("LOG_FILE"):
    _handlers.append(logging.FileHandler(os.getenv("LOG_FILE")))

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=_handlers,
)

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception class for loan ledger errors"""

    status_code = 400
    retryable = False

    def __init__(self, message, details=None):
        self.message = message
        self.details = details
        self.timestamp = datetime.now()
        super().__init__(self.message)

    def to_payload(self) -> dict:
        """Client-facing error body."""
        return {"message": self.message}


class InvalidInput(LedgerError):
    """Bad loan construction parameters. Fatal to the request."""


class InvalidPaymentAmount(LedgerError):
    """
    Payment amount is non-positive or outside the accepted tolerance band.

    When the amount is too large, ``suggested_payment`` holds the amount a
    payoff would actually require so the caller can re-prompt the user.
    """

    status_code = 422

    def __init__(self, message, suggested_payment=None, details=None):
        self.suggested_payment = suggested_payment
        super().__init__(message, details)

    def to_payload(self) -> dict:
        payload = {"message": self.message}
        if self.suggested_payment is not None:
            payload["suggestedPayment"] = float(self.suggested_payment)
        return payload


class LoanAlreadyPaidOff(LedgerError):
    status_code = 409


class InvalidDate(LedgerError):
    status_code = 422


class Busy(LedgerError):
    """Another mutation holds the loan. Safe to retry with backoff."""

    status_code = 503
    retryable = True


class LoanNotFound(LedgerError):
    status_code = 404


class NotAuthorized(LedgerError):
    status_code = 403


def error_handler(func):
    """Decorator for handling errors and providing detailed information.

    Ledger errors pass through untouched; anything else is logged with its
    location and wrapped in a ``LedgerError``.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LedgerError:
            raise
        except Exception as e:
            exc_type, exc_value, exc_tb = sys.exc_info()
            tb = traceback.extract_tb(exc_tb)

            error_location = f"{tb[-1].filename}:{tb[-1].lineno}"
            error_function = tb[-1].name

            error_details = {
                "error_type": exc_type.__name__,
                "location": error_location,
                "function": error_function,
                "arguments": {"args": str(args), "kwargs": str(kwargs)},
                "traceback": traceback.format_exc(),
            }

            logger.error(f"Error in {error_location} - {error_function}: {str(e)}")
            logger.debug(f"Detailed error information: {error_details}")

            raise LedgerError(
                f"Error in {error_function} at {error_location}: {str(e)}",
                error_details,
            ) from e

    return wrapper
