"""
Centralized, type-safe status definitions for the job ledger.

This module is the single source of truth for the lifecycle of a job.
A job is one record that lives from estimate to paid invoice; its status
moves through a fixed, linear sequence and never branches or rolls back.

``JobStatus`` inherits from ``(str, Enum)`` so that members compare equal to
the plain strings stored in the ``jobs`` table and serialize naturally to
JSON at tool boundaries.
"""

from enum import Enum
from typing import Dict, Optional


class JobStatus(str, Enum):
    """Lifecycle statuses stored in the 'jobs' table.

    Canonical order:
        Estimate Created -> Estimate Sent -> Approved -> In Progress
        -> Completed -> Invoiced -> Paid
    """

    ESTIMATE_CREATED = "Estimate Created"
    ESTIMATE_SENT = "Estimate Sent"
    APPROVED = "Approved"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    INVOICED = "Invoiced"
    PAID = "Paid"


INITIAL_STATUS = JobStatus.ESTIMATE_CREATED
TERMINAL_STATUS = JobStatus.PAID

# Successor table: the only legal forward step from each status.
NEXT_STATUS: Dict[JobStatus, Optional[JobStatus]] = {
    JobStatus.ESTIMATE_CREATED: JobStatus.ESTIMATE_SENT,
    JobStatus.ESTIMATE_SENT: JobStatus.APPROVED,
    JobStatus.APPROVED: JobStatus.IN_PROGRESS,
    JobStatus.IN_PROGRESS: JobStatus.COMPLETED,
    JobStatus.COMPLETED: JobStatus.INVOICED,
    JobStatus.INVOICED: JobStatus.PAID,
    JobStatus.PAID: None,
}

PREVIOUS_STATUS: Dict[JobStatus, Optional[JobStatus]] = {
    status: None for status in JobStatus
}
for _status, _next in NEXT_STATUS.items():
    if _next is not None:
        PREVIOUS_STATUS[_next] = _status

# Milestone date column stamped when a job enters each status.
STATUS_DATE_FIELDS: Dict[JobStatus, Optional[str]] = {
    JobStatus.ESTIMATE_CREATED: "estimate_date",
    JobStatus.ESTIMATE_SENT: None,
    JobStatus.APPROVED: "approval_date",
    JobStatus.IN_PROGRESS: "start_date",
    JobStatus.COMPLETED: "completion_date",
    JobStatus.INVOICED: "invoice_date",
    JobStatus.PAID: "payment_date",
}

MILESTONE_DATE_FIELDS = tuple(field for field in STATUS_DATE_FIELDS.values() if field)


def parse_status(value) -> Optional[JobStatus]:
    """Return the JobStatus for a stored value, or None if it is not one."""
    if isinstance(value, JobStatus):
        return value
    try:
        return JobStatus(value)
    except ValueError:
        return None
