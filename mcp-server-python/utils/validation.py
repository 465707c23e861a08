"""
Input validation for job ledger tools.

Pydantic request models check the shape of each request; the functions here
enforce the semantic rules and produce the human-readable messages that are
returned to callers verbatim.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.errors import create_validation_error
from models.status import JobStatus, parse_status
from utils.money import quantize_amount, to_decimal

MAX_ACTION_LENGTH = 100
MAX_NOTES_LENGTH = 5000
MAX_CUSTOMER_NAME_LENGTH = 255
MAX_ADDRESS_LENGTH = 1000
MAX_LIMIT = 1000

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_job_id(job_id, label: str = "job ID") -> int:
    """
    Validate a record id.

    Args:
        job_id: The id value to validate
        label: Name used in error messages ("job ID", "customer ID")

    Returns:
        Validated id as integer

    Raises:
        ToolError: If the id is invalid
    """
    if job_id is None:
        raise create_validation_error(f"Invalid {label}: cannot be null")

    # bool is a subclass of int in Python, reject explicitly
    if isinstance(job_id, bool) or not isinstance(job_id, int):
        raise create_validation_error(
            f"Invalid {label} type: expected integer, got {type(job_id).__name__}"
        )

    if job_id < 1:
        raise create_validation_error(f"Invalid {label}: {job_id} must be a positive integer (>= 1)")

    return job_id


def validate_customer_id(customer_id) -> int:
    if customer_id is None:
        raise create_validation_error("Please select a customer")
    return validate_job_id(customer_id, label="customer ID")


def validate_status(status) -> JobStatus:
    """
    Validate a lifecycle status value.

    Raises:
        ToolError: If status is not one of the seven workflow statuses
    """
    if status is None:
        raise create_validation_error("Invalid status: cannot be null")

    if not isinstance(status, str):
        raise create_validation_error(
            f"Invalid status type: expected string, got {type(status).__name__}"
        )

    parsed = parse_status(status)
    if parsed is None:
        allowed = ", ".join(s.value for s in JobStatus)
        raise create_validation_error(
            f"Invalid status value: '{status}'. Allowed values are: {allowed}"
        )
    return parsed


def _require_text(value, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise create_validation_error(message)
    return value.strip()


def validate_line_item(item: Any, index: int) -> Dict[str, Any]:
    """
    Validate a single line item and return its normalized form.

    Args:
        item: Raw line item mapping with action, amount and description
        index: Zero-based position in the submitted list

    Returns:
        Dict with trimmed action/description and the amount as a 2dp Decimal

    Raises:
        ToolError: If any field is missing or invalid
    """
    position = index + 1
    if not isinstance(item, dict):
        raise create_validation_error(f"Line item {position}: must be an object")

    action = _require_text(item.get("action"), f"Line item {position}: Action is required")
    if len(action) > MAX_ACTION_LENGTH:
        raise create_validation_error(
            f"Line item {position}: Action must be at most {MAX_ACTION_LENGTH} characters"
        )

    if item.get("amount") is None:
        raise create_validation_error(f"Line item {position}: Amount is required")
    amount = to_decimal(item.get("amount"))
    if amount is None:
        raise create_validation_error(f"Line item {position}: Amount must be a number")
    if amount < 0:
        raise create_validation_error(f"Line item {position}: Amount cannot be negative")

    description = _require_text(
        item.get("description"), f"Line item {position}: Description is required"
    )

    return {
        "action": action,
        "amount": quantize_amount(amount),
        "description": description,
    }


def validate_line_items(line_items) -> List[Dict[str, Any]]:
    """
    Validate a full line item set.

    Raises:
        ToolError: If the set is empty or any item is invalid
    """
    if line_items is None or not isinstance(line_items, list) or len(line_items) == 0:
        raise create_validation_error("At least one line item is required")
    return [validate_line_item(item, index) for index, item in enumerate(line_items)]


def validate_notes(
    notes, max_length: int = MAX_NOTES_LENGTH, field_name: str = "Notes"
) -> Optional[str]:
    """
    Normalize free text: trimmed, with blank text stored as None.

    Raises:
        ToolError: If the value is not a string or is too long
    """
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise create_validation_error(
            f"Invalid {field_name.lower()} type: expected string, got {type(notes).__name__}"
        )
    trimmed = notes.strip()
    if len(trimmed) > max_length:
        raise create_validation_error(f"{field_name} must be at most {max_length} characters")
    return trimmed or None


def validate_iso_date(value, field_name: str) -> date:
    """
    Parse a YYYY-MM-DD date string.

    Raises:
        ToolError: If the value is not a valid calendar date
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise create_validation_error(f"{field_name} is required")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise create_validation_error(
            f"Invalid {field_name}: '{value}' is not a date in YYYY-MM-DD format"
        )


def validate_optional_iso_date(value, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return validate_iso_date(value, field_name)


def validate_limit(limit, default: int, maximum: int = MAX_LIMIT) -> int:
    """
    Validate a result limit, applying ``default`` when not provided.

    Raises:
        ToolError: If limit is not an integer in 1..maximum
    """
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise create_validation_error(
            f"Invalid limit type: expected integer, got {type(limit).__name__}"
        )
    if limit < 1 or limit > maximum:
        raise create_validation_error(f"Invalid limit: {limit} must be between 1 and {maximum}")
    return limit


def validate_search_term(term) -> str:
    if term is None:
        return ""
    if not isinstance(term, str):
        raise create_validation_error(
            f"Invalid search term type: expected string, got {type(term).__name__}"
        )
    return term.strip()


def validate_year(year, default: int) -> int:
    if year is None:
        return default
    if isinstance(year, bool) or not isinstance(year, int) or year < 2000 or year > 2099:
        raise create_validation_error(f"Invalid year: {year} must be between 2000 and 2099")
    return year


def validate_month(month, default: int) -> int:
    if month is None:
        return default
    if isinstance(month, bool) or not isinstance(month, int) or month < 1 or month > 12:
        raise create_validation_error(f"Invalid month: {month} must be between 1 and 12")
    return month


def validate_amount_filter(value, field_name: str) -> Optional[Decimal]:
    if value is None:
        return None
    amount = to_decimal(value)
    if amount is None or amount < 0:
        raise create_validation_error(f"Invalid {field_name}: must be a non-negative number")
    return amount


# ============================================================================
# Customer validators
# ============================================================================


def format_phone_number(phone: str) -> str:
    """
    Format a 10-digit phone number as (XXX) XXX-XXXX.

    Input that does not contain exactly 10 digits is returned unchanged.
    """
    digits = re.sub(r"\D", "", phone)
    if len(digits) != 10:
        return phone
    return f"({digits[0:3]}) {digits[3:6]}-{digits[6:10]}"


def validate_phone_number(phone) -> str:
    """
    Validate a phone number and return its formatted form.

    Raises:
        ToolError: If the phone number does not have exactly 10 digits
    """
    if not isinstance(phone, str) or not phone.strip():
        raise create_validation_error("Phone number is required")
    if len(re.sub(r"\D", "", phone)) != 10:
        raise create_validation_error("Phone number must be 10 digits")
    return format_phone_number(phone)


def validate_email(email) -> Optional[str]:
    if email is None or (isinstance(email, str) and not email.strip()):
        return None
    if not isinstance(email, str) or not EMAIL_PATTERN.match(email.strip()):
        raise create_validation_error("Invalid email format")
    return email.strip()


def validate_customer_name(name) -> str:
    name = _require_text(name, "Customer name is required")
    if len(name) > MAX_CUSTOMER_NAME_LENGTH:
        raise create_validation_error(
            f"Customer name must be at most {MAX_CUSTOMER_NAME_LENGTH} characters"
        )
    return name


def validate_address(address) -> Optional[str]:
    return validate_notes(address, max_length=MAX_ADDRESS_LENGTH, field_name="Address")
