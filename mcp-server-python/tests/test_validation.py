"""
Unit tests for input validation functions.

Tests id, status, line item, date, limit and customer field validation.
"""

from datetime import date
from decimal import Decimal

import pytest

from models.errors import ErrorCode, ToolError
from models.status import JobStatus
from utils.validation import (
    format_phone_number,
    validate_address,
    validate_amount_filter,
    validate_customer_id,
    validate_customer_name,
    validate_email,
    validate_iso_date,
    validate_job_id,
    validate_limit,
    validate_line_items,
    validate_month,
    validate_notes,
    validate_optional_iso_date,
    validate_phone_number,
    validate_search_term,
    validate_status,
    validate_year,
)


def _message(func, *args, **kwargs):
    with pytest.raises(ToolError) as exc_info:
        func(*args, **kwargs)
    assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
    assert exc_info.value.retryable is False
    return exc_info.value.message


class TestValidateJobId:
    def test_valid_ids(self):
        assert validate_job_id(1) == 1
        assert validate_job_id(99999) == 99999

    def test_none(self):
        assert _message(validate_job_id, None) == "Invalid job ID: cannot be null"

    @pytest.mark.parametrize("value", ["1", 1.0, True, [1]])
    def test_wrong_type(self, value):
        assert "expected integer" in _message(validate_job_id, value)

    def test_non_positive(self):
        assert "must be a positive integer" in _message(validate_job_id, 0)
        assert "must be a positive integer" in _message(validate_job_id, -3)

    def test_custom_label(self):
        assert _message(validate_job_id, None, label="estimate ID") == (
            "Invalid estimate ID: cannot be null"
        )

    def test_customer_id_required(self):
        assert _message(validate_customer_id, None) == "Please select a customer"
        assert validate_customer_id(4) == 4


class TestValidateStatus:
    def test_all_statuses_accepted(self):
        for status in JobStatus:
            assert validate_status(status.value) is status

    def test_unknown_status(self):
        message = _message(validate_status, "Cancelled")
        assert "Invalid status value: 'Cancelled'" in message
        assert "Estimate Created" in message

    def test_wrong_type(self):
        assert "expected string" in _message(validate_status, 3)


class TestValidateLineItems:
    def test_valid_items_are_normalized(self):
        items = validate_line_items(
            [
                {"action": " Repair ", "amount": 250.5, "description": "Fix leak"},
                {"action": "Paint", "amount": "100", "description": "Trim"},
            ]
        )
        assert items[0] == {"action": "Repair", "amount": Decimal("250.50"), "description": "Fix leak"}
        assert items[1]["amount"] == Decimal("100.00")

    def test_zero_amount_allowed(self):
        items = validate_line_items([{"action": "Visit", "amount": 0, "description": "Free"}])
        assert items[0]["amount"] == Decimal("0.00")

    @pytest.mark.parametrize("value", [None, [], "items", {"action": "x"}])
    def test_empty_set_rejected(self, value):
        assert _message(validate_line_items, value) == "At least one line item is required"

    def test_missing_action(self):
        message = _message(
            validate_line_items, [{"action": "  ", "amount": 1, "description": "d"}]
        )
        assert message == "Line item 1: Action is required"

    def test_missing_amount(self):
        message = _message(validate_line_items, [{"action": "a", "description": "d"}])
        assert message == "Line item 1: Amount is required"

    def test_negative_amount(self):
        items = [
            {"action": "a", "amount": 1, "description": "d"},
            {"action": "b", "amount": -5, "description": "d"},
        ]
        assert _message(validate_line_items, items) == "Line item 2: Amount cannot be negative"

    def test_non_numeric_amount(self):
        items = [{"action": "a", "amount": "lots", "description": "d"}]
        assert _message(validate_line_items, items) == "Line item 1: Amount must be a number"

    def test_missing_description(self):
        items = [{"action": "a", "amount": 1}]
        assert _message(validate_line_items, items) == "Line item 1: Description is required"

    def test_item_must_be_object(self):
        assert _message(validate_line_items, ["repair"]) == "Line item 1: must be an object"


class TestValidateNotes:
    def test_blank_becomes_none(self):
        assert validate_notes("   ") is None
        assert validate_notes(None) is None

    def test_trimmed(self):
        assert validate_notes("  call first ") == "call first"

    def test_too_long(self):
        assert "at most 10 characters" in _message(validate_notes, "x" * 11, max_length=10)


class TestDates:
    def test_iso_date(self):
        assert validate_iso_date("2025-07-05", "payment date") == date(2025, 7, 5)

    def test_bad_date(self):
        message = _message(validate_iso_date, "07/05/2025", "payment date")
        assert message == "Invalid payment date: '07/05/2025' is not a date in YYYY-MM-DD format"

    def test_optional_date(self):
        assert validate_optional_iso_date("", "date_from") is None
        assert validate_optional_iso_date("2025-01-31", "date_from") == date(2025, 1, 31)


class TestLimitsAndFilters:
    def test_limit_default(self):
        assert validate_limit(None, default=5) == 5

    def test_limit_bounds(self):
        assert "between 1 and 1000" in _message(validate_limit, 0, default=5)
        assert "expected integer" in _message(validate_limit, "5", default=5)

    def test_search_term(self):
        assert validate_search_term(None) == ""
        assert validate_search_term("  smith ") == "smith"

    def test_year_and_month(self):
        assert validate_year(None, 2025) == 2025
        assert validate_month(12, 1) == 12
        assert "between 1 and 12" in _message(validate_month, 13, 1)
        assert "between 2000 and 2099" in _message(validate_year, 1999, 2025)

    def test_amount_filter(self):
        assert validate_amount_filter("10.5", "amount_min") == Decimal("10.5")
        assert validate_amount_filter(None, "amount_min") is None
        assert "non-negative" in _message(validate_amount_filter, -1, "amount_min")


class TestCustomerFields:
    def test_phone_formatted(self):
        assert validate_phone_number("555.123.4567") == "(555) 123-4567"
        assert format_phone_number("12345") == "12345"

    def test_phone_digits(self):
        assert _message(validate_phone_number, "555-1234") == "Phone number must be 10 digits"
        assert _message(validate_phone_number, "") == "Phone number is required"

    def test_email(self):
        assert validate_email("") is None
        assert validate_email(" a@b.co ") == "a@b.co"
        assert _message(validate_email, "not-an-email") == "Invalid email format"

    def test_name_and_address(self):
        assert validate_customer_name("  Jane ") == "Jane"
        assert _message(validate_customer_name, " ") == "Customer name is required"
        assert validate_address("  ") is None
