"""
Shared steps of the job lifecycle mutations.

Every mutating tool runs the same pipeline inside one writer transaction:
load the job, let the workflow engine judge the move, write status plus the
stamped milestone date, commit, and reload the job with its customer, line
items and aging annotation.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Optional, TypeVar

from config import get_config
from db.jobs_reader import load_job_details
from db.jobs_writer import JobsWriter
from models.errors import ConflictError, create_conflict_error, create_not_found_error
from models.status import JobStatus
from schemas.records import JobDetails
from utils.workflow import check_transition_or_raise, get_status_date_updates

logger = logging.getLogger(__name__)

T = TypeVar("T")


def reload_job_details(writer: JobsWriter, job_id: int, day: date) -> JobDetails:
    """Re-read a job on the writer's connection, populated for the response."""
    job_row = writer.find_job_by_id(job_id)
    if job_row is None:
        raise create_not_found_error("Job", job_id)
    return load_job_details(writer.conn, job_row, day, get_config().overdue_days)


def build_transition_fields(
    target: JobStatus, day: date, timestamp: str, extra: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Column values written when a job enters ``target``."""
    fields: Dict[str, Any] = {"status": target.value}
    fields.update(get_status_date_updates(target, day))
    if extra:
        fields.update(extra)
    fields["updated_at"] = timestamp
    return fields


def apply_transition(
    writer: JobsWriter,
    job_row: Dict[str, Any],
    target: JobStatus,
    day: date,
    timestamp: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Move a loaded job one step forward.

    Raises:
        StateError: If ``target`` is not the immediate successor
    """
    check_transition_or_raise(job_row["status"], target)
    writer.update_job(job_row["id"], build_transition_fields(target, day, timestamp, extra))
    logger.info(
        "Job %s: %s -> %s", job_row["id"], job_row["status"], target.value
    )


def retry_on_conflict(operation: Callable[[], T], what: str, attempts: Optional[int] = None) -> T:
    """
    Run ``operation`` again while it fails with a retryable ConflictError.

    Used around identifier minting: each attempt re-counts and re-mints, so a
    collision is resolved by the next attempt picking a fresh number.

    Args:
        operation: Mint-and-write step to run
        what: Identifier name for logs and the final error ("estimate number")
        attempts: Maximum attempts (defaults to the configured retry count)

    Raises:
        ConflictError: Non-retryable conflicts immediately, or a retryable
            one once every attempt collided
    """
    max_attempts = max(1, attempts if attempts is not None else get_config().identifier_retries)
    last_error: Optional[ConflictError] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except ConflictError as e:
            if not e.retryable:
                raise
            last_error = e
            logger.warning("%s collision on attempt %d/%d", what, attempt, max_attempts)

    raise create_conflict_error(
        f"Could not assign a unique {what} after {max_attempts} attempts, please retry",
        retryable=True,
        original_error=last_error,
    )
