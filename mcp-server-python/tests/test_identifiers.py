"""
Unit tests for estimate and invoice number generation.
"""

import random
from datetime import date

import pytest

from models.errors import ErrorCode, ToolError
from utils.identifiers import (
    ESTIMATE_NUMBER_COLUMN,
    ESTIMATE_NUMBER_PATTERN,
    INVOICE_NUMBER_COLUMN,
    INVOICE_NUMBER_PATTERN,
    format_date_prefix,
    generate_estimate_number,
    generate_invoice_number,
    parse_estimate_number,
    parse_invoice_number,
)

DAY = date(2025, 7, 5)


def counter(count):
    calls = []

    def _count(column, prefix):
        calls.append((column, prefix))
        return count

    _count.calls = calls
    return _count


class TestDatePrefix:
    def test_two_digit_parts(self):
        assert format_date_prefix(DAY) == "250705"
        assert format_date_prefix(date(2031, 12, 31)) == "311231"


class TestEstimateNumber:
    def test_first_estimate_of_day_gets_letter_a(self):
        number = generate_estimate_number(counter(0), DAY, random.Random(1))
        assert ESTIMATE_NUMBER_PATTERN.match(number)
        assert number.startswith("250705T")
        assert number.endswith("A")

    def test_letter_follows_existing_count(self):
        assert generate_estimate_number(counter(2), DAY).endswith("C")
        assert generate_estimate_number(counter(25), DAY).endswith("Z")

    def test_random_digits_in_range(self):
        rng = random.Random(7)
        for _ in range(50):
            digits = int(generate_estimate_number(counter(0), DAY, rng)[7:10])
            assert 100 <= digits <= 999

    def test_seeded_rng_is_deterministic(self):
        first = generate_estimate_number(counter(0), DAY, random.Random(42))
        second = generate_estimate_number(counter(0), DAY, random.Random(42))
        assert first == second

    def test_counts_estimate_column_with_prefix(self):
        count = counter(0)
        generate_estimate_number(count, DAY)
        assert count.calls == [(ESTIMATE_NUMBER_COLUMN, "250705")]

    def test_letters_exhausted(self):
        with pytest.raises(ToolError) as exc_info:
            generate_estimate_number(counter(26), DAY)
        assert exc_info.value.code == ErrorCode.CONFLICT
        assert exc_info.value.retryable is False


class TestInvoiceNumber:
    def test_first_invoice_of_day(self):
        assert generate_invoice_number(counter(0), DAY) == "250705001"

    def test_sequence_follows_count(self):
        assert generate_invoice_number(counter(2), DAY) == "250705003"
        assert generate_invoice_number(counter(998), DAY) == "250705999"

    def test_counts_invoice_column(self):
        count = counter(0)
        number = generate_invoice_number(count, DAY)
        assert count.calls == [(INVOICE_NUMBER_COLUMN, "250705")]
        assert INVOICE_NUMBER_PATTERN.match(number)

    def test_sequence_exhausted(self):
        with pytest.raises(ToolError) as exc_info:
            generate_invoice_number(counter(999), DAY)
        assert exc_info.value.code == ErrorCode.CONFLICT
        assert exc_info.value.retryable is False


class TestParse:
    def test_parse_estimate_number(self):
        assert parse_estimate_number("250705T482B") == {
            "year": 2025,
            "month": 7,
            "day": 5,
            "random": "482",
            "sequence": "B",
        }

    def test_parse_invoice_number(self):
        assert parse_invoice_number("250705012") == {
            "year": 2025,
            "month": 7,
            "day": 5,
            "sequence": 12,
        }

    @pytest.mark.parametrize("value", ["", "250705T48B", "250705t482B", "2507051", None, 250705001])
    def test_malformed_values(self, value):
        assert parse_estimate_number(value) is None
        assert parse_invoice_number(value) is None
