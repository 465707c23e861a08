"""
Job tools: generic status transitions, start/complete wrappers, notes, and
the job read queries.

A job is anything past the estimate stage. Moving into Invoiced or Paid is
reserved for create_invoice and record_payment, which mint an invoice number
or accept a payment date.
"""

import logging
from typing import Any, Dict, Optional

from config import get_config
from db.jobs_reader import (
    ORDER_BY_PAYMENT_DATE,
    ORDER_BY_UPDATED,
    find_job_by_id,
    get_connection,
    load_job_details,
    load_jobs_details,
    query_jobs,
)
from db.jobs_writer import JobsWriter
from models.errors import create_not_found_error, create_state_error
from models.result import handle_tool_errors, success_result
from models.status import JobStatus
from schemas.common import EmptyRequest, LimitRequest, NotesRequest, RecordIdRequest
from schemas.jobs import JobStats, ListJobsRequest, UpdateJobStatusRequest
from utils.clock import Clock, get_current_utc_timestamp, resolve_clock
from utils.lifecycle import apply_transition, reload_job_details
from utils.money import parse_stored_amount, sum_amounts
from utils.validation import validate_job_id, validate_limit, validate_notes, validate_status
from utils.workflow import ACTIVE_STATUSES, POST_ESTIMATE_STATUSES, evaluate_transition

logger = logging.getLogger(__name__)

# Statuses whose entry needs more than a date stamp
_DEDICATED_TRANSITIONS = {
    JobStatus.INVOICED: "create_invoice",
    JobStatus.PAID: "record_payment",
}


def _transition(job_id: int, target: JobStatus, db_path: Optional[str], clock: Optional[Clock]):
    now = resolve_clock(clock)()
    day = now.date()

    with JobsWriter(db_path) as writer:
        job = writer.get_job_or_raise(job_id)

        if target in _DEDICATED_TRANSITIONS and evaluate_transition(job["status"], target).allowed:
            raise create_state_error(
                f"Use {_DEDICATED_TRANSITIONS[target]} to move a job to '{target.value}'"
            )

        apply_transition(writer, job, target, day, get_current_utc_timestamp(lambda: now))
        writer.commit()

        details = reload_job_details(writer, job_id, day)

    return success_result(details)


@handle_tool_errors("update job status")
def update_job_status(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Move a job to the immediate successor of its current status.

    The milestone date of the new status (if any) is stamped with today's
    date in the same write as the status.

    Args:
        args: Dictionary containing:
            - id (int): Job ID
            - status (str): Requested status
            - db_path (str, optional): Database path override
        clock: Optional time source

    Returns:
        Success envelope with the updated job, or a failure envelope. A
        request that skips, repeats or reverses a step fails with STATE_ERROR
        naming both statuses and leaves the job unchanged.
    """
    request = UpdateJobStatusRequest.model_validate(args)
    job_id = validate_job_id(request.id)
    target = validate_status(request.status)
    return _transition(job_id, target, request.db_path, clock)


@handle_tool_errors("start job")
def start_job(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Approved -> In Progress."""
    request = RecordIdRequest.model_validate(args)
    return _transition(validate_job_id(request.id), JobStatus.IN_PROGRESS, request.db_path, clock)


@handle_tool_errors("complete job")
def complete_job(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """In Progress -> Completed."""
    request = RecordIdRequest.model_validate(args)
    return _transition(validate_job_id(request.id), JobStatus.COMPLETED, request.db_path, clock)


@handle_tool_errors("update job notes")
def update_job_notes(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Replace a job's notes at any status. Blank notes are stored as null."""
    request = NotesRequest.model_validate(args)
    job_id = validate_job_id(request.id)
    notes = validate_notes(request.notes)

    now = resolve_clock(clock)()
    with JobsWriter(request.db_path) as writer:
        writer.get_job_or_raise(job_id)
        writer.update_job(job_id, {"notes": notes, "updated_at": get_current_utc_timestamp(lambda: now)})
        writer.commit()
        details = reload_job_details(writer, job_id, now.date())

    return success_result(details)


# ============================================================================
# Read queries
# ============================================================================


@handle_tool_errors("get job")
def get_job(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    request = RecordIdRequest.model_validate(args)
    job_id = validate_job_id(request.id)

    with get_connection(request.db_path) as conn:
        row = find_job_by_id(conn, job_id)
        if row is None:
            raise create_not_found_error("Job", job_id)
        details = load_job_details(conn, row, resolve_clock(clock)().date(), get_config().overdue_days)
    return success_result(details)


@handle_tool_errors("list jobs")
def list_jobs(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    List jobs by scope.

    Scopes:
    - all: every job past the estimate stage, most recently updated first
    - active: Approved, In Progress, Completed and Invoiced
    - completed: Paid jobs, most recently paid first

    An explicit ``status`` overrides the scope.
    """
    request = ListJobsRequest.model_validate(args)

    if request.status is not None:
        statuses, order_by = {validate_status(request.status)}, ORDER_BY_UPDATED
    elif request.scope == "active":
        statuses, order_by = ACTIVE_STATUSES, ORDER_BY_UPDATED
    elif request.scope == "completed":
        statuses, order_by = {JobStatus.PAID}, ORDER_BY_PAYMENT_DATE
    else:
        statuses, order_by = POST_ESTIMATE_STATUSES, ORDER_BY_UPDATED

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, statuses, order_by=order_by)
        jobs = load_jobs_details(conn, rows, resolve_clock(clock)().date(), get_config().overdue_days)
    return success_result(jobs)


@handle_tool_errors("get recent jobs")
def get_recent_jobs(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Most recently updated jobs of any status."""
    request = LimitRequest.model_validate(args)
    limit = validate_limit(request.limit, default=get_config().recent_limit)

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, order_by=ORDER_BY_UPDATED, limit=limit)
        jobs = load_jobs_details(conn, rows, resolve_clock(clock)().date(), get_config().overdue_days)
    return success_result(jobs)


@handle_tool_errors("get job stats")
def get_job_stats(args: Dict[str, Any]) -> Dict[str, Any]:
    request = EmptyRequest.model_validate(args)

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, POST_ESTIMATE_STATUSES)

    active = [row for row in rows if row["status"] in {s.value for s in ACTIVE_STATUSES}]
    stats = JobStats(
        active_count=len(active),
        in_progress_count=sum(1 for row in rows if row["status"] == JobStatus.IN_PROGRESS.value),
        completed_count=sum(1 for row in rows if row["status"] == JobStatus.COMPLETED.value),
        active_value=sum_amounts(parse_stored_amount(row["total_amount"]) for row in active),
    )
    return success_result(stats)
