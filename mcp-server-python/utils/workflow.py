"""
Status workflow engine for the job lifecycle.

This module enforces the fixed, linear status sequence:
- A transition is legal only to the immediate successor of the current status
- Staying put, skipping ahead and moving backward are all rejected
- Entering a status stamps its milestone date (Estimate Sent has none)
- Editing and deleting are only possible while the job is still an estimate

Every function here is pure: no I/O, no clock access. Callers pass the
business date in when they need date updates.
"""

from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional

from models.errors import create_state_error
from models.status import (
    NEXT_STATUS,
    PREVIOUS_STATUS,
    STATUS_DATE_FIELDS,
    JobStatus,
    parse_status,
)


class TransitionResult:
    """Result of a status transition check."""

    def __init__(
        self,
        allowed: bool,
        date_field: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        """
        Initialize a transition result.

        Args:
            allowed: Whether the transition is allowed
            date_field: Milestone column to stamp when the transition happens
            error_message: Error message if transition is blocked
        """
        self.allowed = allowed
        self.date_field = date_field
        self.error_message = error_message

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format."""
        result: Dict[str, Any] = {"allowed": self.allowed, "date_field": self.date_field}
        if self.error_message:
            result["error_message"] = self.error_message
        return result


def _status_label(value) -> str:
    return value.value if isinstance(value, JobStatus) else str(value)


def transition_error_message(current_status, requested_status) -> str:
    return (
        f"Cannot transition from '{_status_label(current_status)}' to "
        f"'{_status_label(requested_status)}'. Status must progress in order."
    )


def can_transition_to(current_status, requested_status) -> bool:
    """True iff ``requested_status`` is the immediate successor of ``current_status``."""
    current = parse_status(current_status)
    requested = parse_status(requested_status)
    if current is None or requested is None:
        return False
    return NEXT_STATUS[current] is requested


def get_next_status(status) -> Optional[JobStatus]:
    """Next status in the workflow, or None for Paid and unknown values."""
    current = parse_status(status)
    if current is None:
        return None
    return NEXT_STATUS[current]


def get_previous_status(status) -> Optional[JobStatus]:
    """Previous status in the workflow, or None for Estimate Created."""
    current = parse_status(status)
    if current is None:
        return None
    return PREVIOUS_STATUS[current]


def get_status_date_field(status) -> Optional[str]:
    """Milestone date column stamped on entering ``status``."""
    current = parse_status(status)
    if current is None:
        return None
    return STATUS_DATE_FIELDS[current]


def get_status_date_updates(status, day: date) -> Dict[str, str]:
    """
    Get the date column updates for entering ``status`` on ``day``.

    Examples:
        >>> get_status_date_updates(JobStatus.APPROVED, date(2025, 7, 5))
        {'approval_date': '2025-07-05'}
        >>> get_status_date_updates(JobStatus.ESTIMATE_SENT, date(2025, 7, 5))
        {}
    """
    field = get_status_date_field(status)
    if field:
        return {field: day.isoformat()}
    return {}


def evaluate_transition(current_status, requested_status) -> TransitionResult:
    """
    Validate a status transition against the linear workflow.

    Policy rules:
    1. Unknown status values are rejected
    2. Only the immediate successor of the current status is allowed
    3. Paid has no successor, so nothing leaves it

    Args:
        current_status: The job's stored status
        requested_status: The status the caller wants to move to

    Returns:
        TransitionResult with the milestone date column to stamp when allowed

    Examples:
        >>> evaluate_transition("Approved", "In Progress").date_field
        'start_date'
        >>> evaluate_transition("Estimate Sent", "Completed").allowed
        False
    """
    requested = parse_status(requested_status)
    if requested is None:
        allowed_values = ", ".join(s.value for s in JobStatus)
        return TransitionResult(
            allowed=False,
            error_message=(
                f"Invalid status value: '{requested_status}'. "
                f"Allowed values are: {allowed_values}"
            ),
        )

    if not can_transition_to(current_status, requested):
        return TransitionResult(
            allowed=False,
            error_message=transition_error_message(current_status, requested),
        )

    return TransitionResult(allowed=True, date_field=STATUS_DATE_FIELDS[requested])


def check_transition_or_raise(current_status, requested_status) -> TransitionResult:
    """
    Validate a transition and raise StateError if it is not allowed.

    Raises:
        StateError: If the transition violates the workflow order
    """
    result = evaluate_transition(current_status, requested_status)
    if not result.allowed:
        raise create_state_error(result.error_message)
    return result


def is_estimate(status) -> bool:
    """Still an estimate: not yet approved."""
    return parse_status(status) in (JobStatus.ESTIMATE_CREATED, JobStatus.ESTIMATE_SENT)


def is_active_job(status) -> bool:
    """Approved but not yet paid."""
    return parse_status(status) in (
        JobStatus.APPROVED,
        JobStatus.IN_PROGRESS,
        JobStatus.COMPLETED,
        JobStatus.INVOICED,
    )


def is_invoiced(status) -> bool:
    return parse_status(status) in (JobStatus.INVOICED, JobStatus.PAID)


def is_paid(status) -> bool:
    return parse_status(status) is JobStatus.PAID


def can_edit_job(status) -> bool:
    """Line items and estimate fields are editable only before approval."""
    return is_estimate(status)


def can_delete_job(status) -> bool:
    """Jobs can only be deleted while they are still estimates."""
    return is_estimate(status)


def statuses_where(predicate) -> FrozenSet[JobStatus]:
    return frozenset(status for status in JobStatus if predicate(status))


ESTIMATE_STATUSES = statuses_where(is_estimate)
ACTIVE_STATUSES = statuses_where(is_active_job)
INVOICED_STATUSES = statuses_where(is_invoiced)
POST_ESTIMATE_STATUSES = statuses_where(lambda status: not is_estimate(status))


def ordered_values(statuses) -> List[str]:
    """Stored string values of ``statuses`` in workflow order, for SQL IN clauses."""
    return [status.value for status in JobStatus if status in statuses]
