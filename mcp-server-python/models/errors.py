"""
Error model for job ledger tools.

Provides structured error codes, typed business-rule failures and sanitized
error messages. Every failure carries a short message suitable for direct
display; no SQL, paths or stack traces leak through.
"""

import os
import re
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Structured error codes for ledger tools."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    STATE_ERROR = "STATE_ERROR"
    CONFLICT = "CONFLICT"
    DB_NOT_FOUND = "DB_NOT_FOUND"
    DB_ERROR = "DB_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """Base exception for tool errors with structured error information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize a tool error.

        Args:
            code: The error code
            message: Human-readable error message
            retryable: Whether the operation can be retried
            original_error: The original exception if this wraps another error
        """
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to the failure envelope returned by every tool."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
        }


class ValidationError(ToolError):
    """Malformed input: empty line items, negative amount, missing text."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, False, original_error)


class NotFoundError(ToolError):
    """Referenced job or customer does not exist."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.NOT_FOUND, message, False)


class StateError(ToolError):
    """Operation attempted from a status that forbids it."""

    def __init__(self, message: str):
        super().__init__(ErrorCode.STATE_ERROR, message, False)


class ConflictError(ToolError):
    """Store-level uniqueness violation (duplicate identifier or phone)."""

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(ErrorCode.CONFLICT, message, retryable, original_error)


def sanitize_path(path: str) -> str:
    """
    Sanitize file paths to avoid exposing sensitive system details.

    Returns only the basename for absolute paths, keeps relative paths.

    Args:
        path: The file path to sanitize

    Returns:
        Sanitized path string
    """
    if os.path.isabs(path):
        return os.path.basename(path)
    return path


def sanitize_sql_error(error_msg: str) -> str:
    """
    Sanitize SQL error messages to remove sensitive details.

    Removes SQL fragments and keeps only actionable information.

    Args:
        error_msg: The original error message

    Returns:
        Sanitized error message
    """
    sanitized = re.sub(r'SQL:.*', '', error_msg, flags=re.IGNORECASE)
    sanitized = re.sub(r'"[^"]*SELECT[^"]*"', '[SQL query]', sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(r"'[^']*SELECT[^']*'", '[SQL query]', sanitized, flags=re.IGNORECASE)

    # Unquoted statements run to the end of the message
    sanitized = re.sub(r'\b(SELECT|INSERT|UPDATE|DELETE)\b.*', '[SQL query]', sanitized, flags=re.IGNORECASE)

    sanitized = re.sub(r'/[^\s]+/', '[path]/', sanitized)

    return sanitized.strip()


def sanitize_stack_trace(error_msg: str) -> str:
    """Keep only the first line of a multi-line error message."""
    lines = error_msg.split('\n')
    if lines:
        return lines[0].strip()
    return error_msg


def create_validation_error(message: str) -> ValidationError:
    """Create a validation error."""
    return ValidationError(message)


def create_not_found_error(entity: str, entity_id) -> NotFoundError:
    """
    Create a not-found error for a job, estimate, invoice or customer.

    Args:
        entity: Display name of the missing record ("Estimate", "Customer", ...)
        entity_id: The id that was looked up

    Returns:
        NotFoundError with NOT_FOUND code
    """
    return NotFoundError(f"{entity} not found: {entity_id}")


def create_state_error(message: str) -> StateError:
    """Create a state error for an operation the current status forbids."""
    return StateError(message)


def create_conflict_error(
    message: str, retryable: bool = True, original_error: Optional[Exception] = None
) -> ConflictError:
    """Create a conflict error for a store uniqueness violation."""
    return ConflictError(message, retryable=retryable, original_error=original_error)


def create_db_not_found_error(db_path: str) -> ToolError:
    """
    Create a database not found error.

    Args:
        db_path: The database path that was not found

    Returns:
        ToolError with DB_NOT_FOUND code
    """
    sanitized_path = sanitize_path(db_path)
    return ToolError(
        code=ErrorCode.DB_NOT_FOUND,
        message=f"Database not found: {sanitized_path}",
        retryable=False
    )


def create_db_error(message: str, retryable: bool = False, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create a database error.

    Args:
        message: Description of the database error
        retryable: Whether the operation can be retried
        original_error: The original exception

    Returns:
        ToolError with DB_ERROR code
    """
    sanitized_message = sanitize_sql_error(message)
    sanitized_message = sanitize_stack_trace(sanitized_message)

    return ToolError(
        code=ErrorCode.DB_ERROR,
        message=f"Database error: {sanitized_message}",
        retryable=retryable,
        original_error=original_error
    )


def create_internal_error(action: str, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create a generic internal error for unexpected exceptions.

    The original exception is kept on the error object for logging but its
    text is never part of the user-visible message.

    Args:
        action: What was being attempted ("create estimate")
        original_error: The original exception

    Returns:
        ToolError with INTERNAL_ERROR code
    """
    return ToolError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Failed to {action}",
        retryable=True,
        original_error=original_error
    )
