"""
Estimate tools: create, revise, send, approve and delete estimates, plus the
estimate read queries.

An estimate is a job in Estimate Created or Estimate Sent. Only those two
statuses allow line item edits and deletion.
"""

import logging
import random
from datetime import date
from typing import Any, Dict, Optional

from config import get_config
from db.jobs_reader import (
    ORDER_BY_ESTIMATE_DATE,
    find_job_by_id,
    get_connection,
    load_job_details,
    load_jobs_details,
    query_jobs,
    search_jobs,
)
from db.jobs_writer import JobsWriter
from models.errors import create_not_found_error, create_state_error
from models.result import handle_tool_errors, success_result
from models.status import INITIAL_STATUS, JobStatus
from schemas.common import EmptyRequest, RecordIdRequest, SearchRequest
from schemas.estimates import CreateEstimateRequest, EstimateStats, UpdateEstimateRequest
from utils.clock import Clock, get_current_utc_timestamp, resolve_clock
from utils.identifiers import generate_estimate_number
from utils.lifecycle import (
    apply_transition,
    build_transition_fields,
    reload_job_details,
    retry_on_conflict,
)
from utils.money import parse_stored_amount, sum_amounts
from utils.validation import (
    validate_customer_id,
    validate_job_id,
    validate_line_items,
    validate_notes,
    validate_search_term,
)
from utils.workflow import (
    ESTIMATE_STATUSES,
    POST_ESTIMATE_STATUSES,
    can_delete_job,
    can_edit_job,
    get_status_date_updates,
    is_estimate,
)

logger = logging.getLogger(__name__)


def _load_estimate_row(writer: JobsWriter, estimate_id: int) -> Dict[str, Any]:
    return writer.get_job_or_raise(estimate_id, entity="Estimate")


@handle_tool_errors("create estimate")
def create_estimate(
    args: Dict[str, Any],
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Create a new estimate for a customer.

    Mints a date-encoded estimate number, stores the validated line items and
    their total, and stamps ``estimate_date`` with today's date. The estimate
    number and the insert share one immediate transaction; a uniqueness
    violation is retried with a fresh number.

    Args:
        args: Dictionary containing:
            - customer_id (int): Existing customer
            - line_items (list): Items with action, amount and description
            - notes (str, optional): Free text
            - db_path (str, optional): Database path override
        clock: Optional time source
        rng: Optional random source for the estimate number digits

    Returns:
        Success envelope with the created estimate, or a failure envelope
    """
    request = CreateEstimateRequest.model_validate(args)
    customer_id = validate_customer_id(request.customer_id)
    items = validate_line_items(request.line_items)
    notes = validate_notes(request.notes)

    now = resolve_clock(clock)()
    day = now.date()
    timestamp = get_current_utc_timestamp(lambda: now)
    total = sum_amounts(item["amount"] for item in items)

    with JobsWriter(request.db_path) as writer:
        if not writer.customer_exists(customer_id):
            raise create_not_found_error("Customer", customer_id)

        def insert_with_fresh_number() -> int:
            estimate_number = generate_estimate_number(
                writer.count_identifiers_with_prefix, day, rng
            )
            return writer.insert_job(
                {
                    "customer_id": customer_id,
                    "estimate_number": estimate_number,
                    "status": INITIAL_STATUS.value,
                    **get_status_date_updates(INITIAL_STATUS, day),
                    "total_amount": total,
                    "notes": notes,
                    "created_at": timestamp,
                    "updated_at": timestamp,
                }
            )

        job_id = retry_on_conflict(insert_with_fresh_number, "estimate number")
        writer.replace_line_items(job_id, items)
        writer.commit()

        details = reload_job_details(writer, job_id, day)

    logger.info("Created estimate %s (id=%s)", details.estimate_number, job_id)
    return success_result(details)


@handle_tool_errors("update estimate")
def update_estimate(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Revise an estimate's line items and/or notes.

    Line items are replaced as a whole set and renumbered from 1; the total is
    recomputed in the same transaction. Omitted fields are left unchanged.
    """
    request = UpdateEstimateRequest.model_validate(args)
    estimate_id = validate_job_id(request.id, label="estimate ID")
    items = validate_line_items(request.line_items) if request.line_items is not None else None
    notes_provided = "notes" in request.model_fields_set

    now = resolve_clock(clock)()
    timestamp = get_current_utc_timestamp(lambda: now)

    with JobsWriter(request.db_path) as writer:
        job = _load_estimate_row(writer, estimate_id)
        if not can_edit_job(job["status"]):
            raise create_state_error(
                f"Cannot edit estimate in '{job['status']}' status. "
                "Only estimates that have not been approved can be edited."
            )

        fields: Dict[str, Any] = {"updated_at": timestamp}
        if items is not None:
            fields["total_amount"] = writer.replace_line_items(estimate_id, items)
        if notes_provided:
            fields["notes"] = validate_notes(request.notes)
        writer.update_job(estimate_id, fields)
        writer.commit()

        details = reload_job_details(writer, estimate_id, now.date())

    return success_result(details)


@handle_tool_errors("delete estimate")
def delete_estimate(args: Dict[str, Any]) -> Dict[str, Any]:
    """Delete an estimate and its line items. Approved work cannot be deleted."""
    request = RecordIdRequest.model_validate(args)
    estimate_id = validate_job_id(request.id, label="estimate ID")

    with JobsWriter(request.db_path) as writer:
        job = _load_estimate_row(writer, estimate_id)
        if not can_delete_job(job["status"]):
            raise create_state_error(
                f"Cannot delete job in '{job['status']}' status. "
                "Only estimates that have not been approved can be deleted."
            )
        writer.delete_job(estimate_id)
        writer.commit()

    logger.info("Deleted estimate %s (id=%s)", job["estimate_number"], estimate_id)
    return success_result({"id": estimate_id, "deleted": True})


def _advance_estimate(args: Dict[str, Any], target: JobStatus, clock: Optional[Clock]):
    request = RecordIdRequest.model_validate(args)
    estimate_id = validate_job_id(request.id, label="estimate ID")

    now = resolve_clock(clock)()
    day = now.date()

    timestamp = get_current_utc_timestamp(lambda: now)

    with JobsWriter(request.db_path) as writer:
        job = _load_estimate_row(writer, estimate_id)
        if target is JobStatus.APPROVED and job["status"] == JobStatus.ESTIMATE_CREATED.value:
            # Approval may skip the optional "sent" step
            writer.update_job(estimate_id, build_transition_fields(target, day, timestamp))
            logger.info("Job %s: %s -> %s", estimate_id, job["status"], target.value)
        else:
            apply_transition(writer, job, target, day, timestamp)
        writer.commit()

        details = reload_job_details(writer, estimate_id, day)

    return success_result(details)


@handle_tool_errors("mark estimate sent")
def mark_estimate_sent(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Estimate Created -> Estimate Sent. No milestone date is stamped."""
    return _advance_estimate(args, JobStatus.ESTIMATE_SENT, clock)


@handle_tool_errors("approve estimate")
def approve_estimate(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Estimate Created or Estimate Sent -> Approved, stamping approval_date."""
    return _advance_estimate(args, JobStatus.APPROVED, clock)


# ============================================================================
# Read queries
# ============================================================================


@handle_tool_errors("get estimate")
def get_estimate(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    request = RecordIdRequest.model_validate(args)
    estimate_id = validate_job_id(request.id, label="estimate ID")

    with get_connection(request.db_path) as conn:
        row = find_job_by_id(conn, estimate_id)
        if row is None:
            raise create_not_found_error("Estimate", estimate_id)
        details = load_job_details(
            conn, row, resolve_clock(clock)().date(), get_config().overdue_days
        )
    return success_result(details)


@handle_tool_errors("list estimates")
def list_estimates(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Estimates that have not been approved yet, newest first."""
    request = EmptyRequest.model_validate(args)
    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, ESTIMATE_STATUSES, order_by=ORDER_BY_ESTIMATE_DATE)
        estimates = load_jobs_details(
            conn, rows, resolve_clock(clock)().date(), get_config().overdue_days
        )
    return success_result(estimates)


@handle_tool_errors("search estimates")
def search_estimates(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Search estimates by number, notes or customer name; blank term lists all."""
    request = SearchRequest.model_validate(args)
    term = validate_search_term(request.term)

    with get_connection(request.db_path) as conn:
        if term:
            rows = search_jobs(conn, term, ESTIMATE_STATUSES, order_by=ORDER_BY_ESTIMATE_DATE)
        else:
            rows = query_jobs(conn, ESTIMATE_STATUSES, order_by=ORDER_BY_ESTIMATE_DATE)
        estimates = load_jobs_details(
            conn, rows, resolve_clock(clock)().date(), get_config().overdue_days
        )
    return success_result(estimates)


def _in_month(value: Optional[str], day: date) -> bool:
    return bool(value) and value[:7] == day.isoformat()[:7]


@handle_tool_errors("get estimate stats")
def get_estimate_stats(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Pending estimate count and value, this month's estimates, and the
    conversion rate (percentage of all estimates that were approved).
    """
    request = EmptyRequest.model_validate(args)
    day = resolve_clock(clock)().date()

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, order_by=ORDER_BY_ESTIMATE_DATE)

    pending = [row for row in rows if is_estimate(row["status"])]
    monthly = [row for row in rows if _in_month(row["estimate_date"], day)]
    converted = [row for row in rows if row["status"] in {s.value for s in POST_ESTIMATE_STATUSES}]

    stats = EstimateStats(
        pending_count=len(pending),
        pending_value=sum_amounts(parse_stored_amount(row["total_amount"]) for row in pending),
        monthly_count=len(monthly),
        monthly_value=sum_amounts(parse_stored_amount(row["total_amount"]) for row in monthly),
        conversion_rate=round(len(converted) * 100 / len(rows)) if rows else 0,
    )
    return success_result(stats)
