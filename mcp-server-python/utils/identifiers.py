"""
Date-encoded identifier generation for estimates and invoices.

Estimate number: ``YYMMDD`` + ``T`` + random 100-999 + sequence letter
    Example: 250705T954B (July 5 2025, random 954, second estimate of the day)
Invoice number: ``YYMMDD`` + zero-padded daily sequence
    Example: 250714001 (July 14 2025, first invoice of the day)

Generators keep no state. Each call asks the store how many identifiers
already carry today's prefix; uniqueness itself is enforced by the store.
"""

import random
import re
from datetime import date
from typing import Any, Callable, Dict, Optional

from models.errors import create_conflict_error

ESTIMATE_NUMBER_PATTERN = re.compile(r"^(\d{2})(\d{2})(\d{2})T(\d{3})([A-Z])$")
INVOICE_NUMBER_PATTERN = re.compile(r"^(\d{2})(\d{2})(\d{2})(\d{3})$")

ESTIMATE_NUMBER_COLUMN = "estimate_number"
INVOICE_NUMBER_COLUMN = "invoice_number"

MAX_ESTIMATES_PER_DAY = 26
MAX_INVOICES_PER_DAY = 999

# count_with_prefix(column, prefix) -> number of rows whose column starts with prefix
PrefixCounter = Callable[[str, str], int]


def format_date_prefix(day: date) -> str:
    """Two-digit year, month and day: 2025-07-05 -> '250705'."""
    return day.strftime("%y%m%d")


def generate_estimate_number(
    count_with_prefix: PrefixCounter,
    day: date,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Mint an estimate number for ``day``.

    The trailing letter encodes how many estimates already exist for the day
    (0 -> 'A', 1 -> 'B', ...). The three random digits make same-letter
    collisions unlikely after a same-day deletion; the store's unique index
    catches the rest.

    Raises:
        ConflictError: If the day's 26 sequence letters are exhausted
    """
    prefix = format_date_prefix(day)
    count = count_with_prefix(ESTIMATE_NUMBER_COLUMN, prefix)
    if count >= MAX_ESTIMATES_PER_DAY:
        raise create_conflict_error(
            f"Daily estimate limit reached: {MAX_ESTIMATES_PER_DAY} estimates already exist for {day.isoformat()}",
            retryable=False,
        )

    sequence_letter = chr(ord("A") + count)
    random_digits = (rng or random).randint(100, 999)
    return f"{prefix}T{random_digits}{sequence_letter}"


def generate_invoice_number(count_with_prefix: PrefixCounter, day: date) -> str:
    """
    Mint an invoice number for ``day``: 1 + today's invoice count, padded to 3.

    Raises:
        ConflictError: If the day's 999 sequence numbers are exhausted
    """
    prefix = format_date_prefix(day)
    count = count_with_prefix(INVOICE_NUMBER_COLUMN, prefix)
    if count >= MAX_INVOICES_PER_DAY:
        raise create_conflict_error(
            f"Daily invoice limit reached: {MAX_INVOICES_PER_DAY} invoices already exist for {day.isoformat()}",
            retryable=False,
        )
    return f"{prefix}{count + 1:03d}"


def parse_estimate_number(estimate_number: str) -> Optional[Dict[str, Any]]:
    """
    Decode an estimate number into its parts.

    Returns:
        Dict with year, month, day, random and sequence, or None if malformed
    """
    if not isinstance(estimate_number, str):
        return None
    match = ESTIMATE_NUMBER_PATTERN.match(estimate_number)
    if not match:
        return None
    return {
        "year": 2000 + int(match.group(1)),
        "month": int(match.group(2)),
        "day": int(match.group(3)),
        "random": match.group(4),
        "sequence": match.group(5),
    }


def parse_invoice_number(invoice_number: str) -> Optional[Dict[str, Any]]:
    """
    Decode an invoice number into its parts.

    Returns:
        Dict with year, month, day and sequence, or None if malformed
    """
    if not isinstance(invoice_number, str):
        return None
    match = INVOICE_NUMBER_PATTERN.match(invoice_number)
    if not match:
        return None
    return {
        "year": 2000 + int(match.group(1)),
        "month": int(match.group(2)),
        "day": int(match.group(3)),
        "sequence": int(match.group(4)),
    }
