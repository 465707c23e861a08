"""
Invoice tools: invoice a completed job, record its payment, edit invoice
notes, and the invoice read queries.

Invoices are jobs in Invoiced or Paid status. Aging (is_overdue,
days_overdue) is computed on every read from the invoice date and today.
"""

import logging
from calendar import monthrange
from datetime import date
from typing import Any, Dict, List, Optional

from config import get_config
from db.jobs_reader import (
    ORDER_BY_INVOICE_DATE,
    ORDER_BY_INVOICE_DATE_ASC,
    find_job_by_id,
    get_connection,
    load_job_details,
    load_jobs_details,
    query_jobs,
)
from db.jobs_writer import JobsWriter
from models.errors import (
    ConflictError,
    create_not_found_error,
    create_state_error,
    create_validation_error,
)
from models.result import handle_tool_errors, success_result
from models.status import JobStatus
from schemas.common import EmptyRequest, NotesRequest, RecordIdRequest
from schemas.invoices import (
    InvoiceStats,
    ListInvoicesRequest,
    MonthlyRevenue,
    MonthlyRevenueRequest,
    RecordPaymentRequest,
)
from utils.aging import calculate_overdue_status
from utils.clock import Clock, get_current_utc_timestamp, resolve_clock
from utils.identifiers import generate_invoice_number
from utils.lifecycle import apply_transition, reload_job_details, retry_on_conflict
from utils.money import parse_stored_amount, sum_amounts
from utils.validation import (
    validate_iso_date,
    validate_job_id,
    validate_month,
    validate_notes,
    validate_year,
)
from utils.workflow import INVOICED_STATUSES, check_transition_or_raise, is_invoiced, is_paid

logger = logging.getLogger(__name__)


@handle_tool_errors("create invoice")
def create_invoice(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Invoice a completed job.

    Mints the day's next invoice number (YYMMDD + 3-digit sequence), stamps
    ``invoice_date`` and moves the job to Invoiced in one write. If the
    number is already taken the next sequence number is tried, up to the
    configured retry count.

    Args:
        args: Dictionary containing:
            - id (int): Job ID (must be Completed)
            - db_path (str, optional): Database path override
        clock: Optional time source

    Returns:
        Success envelope with the invoice, or a failure envelope
    """
    request = RecordIdRequest.model_validate(args)
    job_id = validate_job_id(request.id)

    now = resolve_clock(clock)()
    day = now.date()
    timestamp = get_current_utc_timestamp(lambda: now)

    with JobsWriter(request.db_path) as writer:
        job = writer.get_job_or_raise(job_id)
        check_transition_or_raise(job["status"], JobStatus.INVOICED)
        skipped = 0

        def count_with_skips(column: str, prefix: str) -> int:
            return writer.count_identifiers_with_prefix(column, prefix) + skipped

        def assign_invoice_number() -> str:
            nonlocal skipped
            invoice_number = generate_invoice_number(count_with_skips, day)
            try:
                apply_transition(
                    writer, job, JobStatus.INVOICED, day, timestamp,
                    extra={"invoice_number": invoice_number},
                )
            except ConflictError:
                # Taken numbers stay taken; the next attempt moves past them
                skipped += 1
                raise
            return invoice_number

        invoice_number = retry_on_conflict(assign_invoice_number, "invoice number")
        writer.commit()

        details = reload_job_details(writer, job_id, day)

    logger.info("Created invoice %s for job %s", invoice_number, job_id)
    return success_result(details)


@handle_tool_errors("record payment")
def record_payment(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Mark an invoice as paid.

    ``payment_date`` defaults to today and may not precede the invoice date.
    """
    request = RecordPaymentRequest.model_validate(args)
    invoice_id = validate_job_id(request.id, label="invoice ID")

    now = resolve_clock(clock)()
    day = now.date()
    if request.payment_date is None or not request.payment_date.strip():
        payment_date = day
    else:
        payment_date = validate_iso_date(request.payment_date, "payment date")

    with JobsWriter(request.db_path) as writer:
        job = writer.get_job_or_raise(invoice_id, entity="Invoice")

        check_transition_or_raise(job["status"], JobStatus.PAID)

        invoice_date = job.get("invoice_date")
        if invoice_date and payment_date < date.fromisoformat(invoice_date):
            raise create_validation_error(
                f"Payment date {payment_date.isoformat()} cannot be before invoice date {invoice_date}"
            )

        apply_transition(
            writer, job, JobStatus.PAID, day, get_current_utc_timestamp(lambda: now),
            extra={"payment_date": payment_date.isoformat()},
        )
        writer.commit()

        details = reload_job_details(writer, invoice_id, day)

    logger.info("Recorded payment for invoice %s", job.get("invoice_number"))
    return success_result(details)


@handle_tool_errors("update invoice notes")
def update_invoice_notes(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Replace an unpaid invoice's notes. Paid invoices are read-only."""
    request = NotesRequest.model_validate(args)
    invoice_id = validate_job_id(request.id, label="invoice ID")
    notes = validate_notes(request.notes)

    now = resolve_clock(clock)()
    with JobsWriter(request.db_path) as writer:
        job = writer.get_job_or_raise(invoice_id, entity="Invoice")
        if is_paid(job["status"]):
            raise create_state_error("Cannot edit paid invoice")
        if not is_invoiced(job["status"]):
            raise create_state_error(
                f"Job in '{job['status']}' status has not been invoiced yet"
            )
        writer.update_job(
            invoice_id, {"notes": notes, "updated_at": get_current_utc_timestamp(lambda: now)}
        )
        writer.commit()
        details = reload_job_details(writer, invoice_id, now.date())

    return success_result(details)


# ============================================================================
# Read queries
# ============================================================================


@handle_tool_errors("get invoice")
def get_invoice(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Fetch one invoice. Jobs that were never invoiced are reported as not found."""
    request = RecordIdRequest.model_validate(args)
    invoice_id = validate_job_id(request.id, label="invoice ID")

    with get_connection(request.db_path) as conn:
        row = find_job_by_id(conn, invoice_id)
        if row is None or not is_invoiced(row["status"]):
            raise create_not_found_error("Invoice", invoice_id)
        details = load_job_details(conn, row, resolve_clock(clock)().date(), get_config().overdue_days)
    return success_result(details)


@handle_tool_errors("list invoices")
def list_invoices(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    List invoices by scope.

    Scopes:
    - all: Invoiced and Paid, newest invoice first
    - unpaid: Invoiced, newest invoice first
    - overdue: unpaid invoices past the overdue threshold, oldest first
    """
    request = ListInvoicesRequest.model_validate(args)
    day = resolve_clock(clock)().date()
    overdue_days = get_config().overdue_days

    with get_connection(request.db_path) as conn:
        if request.scope == "all":
            rows = query_jobs(conn, INVOICED_STATUSES, order_by=ORDER_BY_INVOICE_DATE)
        elif request.scope == "unpaid":
            rows = query_jobs(conn, {JobStatus.INVOICED}, order_by=ORDER_BY_INVOICE_DATE)
        else:
            rows = [
                row
                for row in query_jobs(conn, {JobStatus.INVOICED}, order_by=ORDER_BY_INVOICE_DATE_ASC)
                if calculate_overdue_status(
                    row["status"], row["invoice_date"], row["payment_date"], day, overdue_days
                ).is_overdue
            ]
        invoices = load_jobs_details(conn, rows, day, overdue_days)
    return success_result(invoices)


def _total(rows: List[Dict[str, Any]]):
    return sum_amounts(parse_stored_amount(row["total_amount"]) for row in rows)


@handle_tool_errors("get invoice stats")
def get_invoice_stats(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Unpaid, overdue and paid counts and totals, plus average days to pay."""
    request = EmptyRequest.model_validate(args)
    day = resolve_clock(clock)().date()
    overdue_days = get_config().overdue_days

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, INVOICED_STATUSES, order_by=ORDER_BY_INVOICE_DATE)

    unpaid = [row for row in rows if not is_paid(row["status"])]
    paid = [row for row in rows if is_paid(row["status"])]
    overdue = [
        row
        for row in unpaid
        if calculate_overdue_status(
            row["status"], row["invoice_date"], None, day, overdue_days
        ).is_overdue
    ]

    days_to_pay = [
        (date.fromisoformat(row["payment_date"]) - date.fromisoformat(row["invoice_date"])).days
        for row in paid
        if row["invoice_date"] and row["payment_date"]
    ]

    stats = InvoiceStats(
        unpaid_count=len(unpaid),
        unpaid_total=_total(unpaid),
        overdue_count=len(overdue),
        overdue_total=_total(overdue),
        paid_count=len(paid),
        paid_total=_total(paid),
        average_days_to_pay=round(sum(days_to_pay) / len(days_to_pay)) if days_to_pay else 0,
    )
    return success_result(stats)


def paid_rows_in_month(rows: List[Dict[str, Any]], year: int, month: int) -> List[Dict[str, Any]]:
    """Paid jobs whose payment date falls in the given month."""
    first = date(year, month, 1)
    last = date(year, month, monthrange(year, month)[1])
    return [
        row
        for row in rows
        if is_paid(row["status"])
        and row["payment_date"]
        and first <= date.fromisoformat(row["payment_date"]) <= last
    ]


@handle_tool_errors("get monthly revenue")
def get_monthly_revenue(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Revenue collected (sum of paid invoices) in one month, default current."""
    request = MonthlyRevenueRequest.model_validate(args)
    day = resolve_clock(clock)().date()
    year = validate_year(request.year, default=day.year)
    month = validate_month(request.month, default=day.month)

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, {JobStatus.PAID}, order_by=ORDER_BY_INVOICE_DATE)

    paid = paid_rows_in_month(rows, year, month)
    return success_result(
        MonthlyRevenue(year=year, month=month, revenue=_total(paid), count=len(paid))
    )
