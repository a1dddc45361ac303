"""
Central date utilities for the loan ledger.

The API exchanges ISO-8601 strings (YYYY-MM-DD). The mobile client sometimes
sends full timestamps (``new Date().toISOString()``), so parsing accepts those
too and truncates to the calendar date. Period arithmetic is calendar-month
based: a monthly loan started on Jan 31 falls due on Feb 29/28, Mar 31, ...
"""

from datetime import datetime, date
from typing import Union

import pandas as pd
from dateutil.relativedelta import relativedelta

from loan_ledger.core.constants import MONTHS_PER_PERIOD, PaymentFrequency
from loan_ledger.utils.error_utils import error_handler, InvalidDate


@error_handler
def parse_date(date_input: Union[str, datetime, date, pd.Timestamp]) -> date:
    """
    Parse a date from the formats the client produces.

    Args:
        date_input: ISO date string, ISO timestamp string, datetime, date or pd.Timestamp

    Returns:
        date: Calendar date

    Raises:
        InvalidDate: If the input is missing or cannot be parsed

    Examples:
        >>> parse_date("2024-01-15")
        datetime.date(2024, 1, 15)

        >>> parse_date("2024-01-15T10:22:03.000Z")
        datetime.date(2024, 1, 15)
    """
    if date_input is None:
        raise InvalidDate("Date input cannot be None")

    if isinstance(date_input, pd.Timestamp):
        return date_input.date()

    if isinstance(date_input, datetime):
        return date_input.date()

    if isinstance(date_input, date):
        return date_input

    if isinstance(date_input, str):
        return _parse_date_string(date_input.strip())

    raise InvalidDate(f"Unsupported date input type: {type(date_input)}")


def _parse_date_string(date_str: str) -> date:
    if not date_str:
        raise InvalidDate("Date string cannot be empty")

    for format_str in ("%Y-%m-%d", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, format_str).date()
        except ValueError:
            continue

    # Timestamps and other ISO-8601 variants
    try:
        return pd.Timestamp(date_str).date()
    except (ValueError, TypeError):
        pass

    raise InvalidDate(f"Unable to parse date string '{date_str}'. Expected ISO-8601 (YYYY-MM-DD)")


def add_periods(start: date, frequency: Union[PaymentFrequency, str], periods: int = 1) -> date:
    """
    Shift a date by a number of payment periods.

    Calendar-month arithmetic: the day of month is clamped to the target month
    length, relative to ``start`` (so repeated calls stay anchored).

    Examples:
        >>> add_periods(date(2024, 1, 31), "monthly", 1)
        datetime.date(2024, 2, 29)
        >>> add_periods(date(2024, 1, 15), "half-yearly", 2)
        datetime.date(2025, 1, 15)
    """
    months = MONTHS_PER_PERIOD[PaymentFrequency(frequency)] * periods
    return start + relativedelta(months=months)


@error_handler
def validate_not_before(candidate: date, boundary: date, label: str) -> None:
    """
    Ensure ``candidate`` is not earlier than ``boundary``.

    Raises:
        InvalidDate: If candidate precedes boundary
    """
    if boundary is not None and candidate < boundary:
        raise InvalidDate(f"Date {candidate.isoformat()} is before the {label} ({boundary.isoformat()})")
