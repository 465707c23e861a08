"""
Dashboard tools: headline stats, quick action counts and recent activity.
"""

from collections import Counter
from typing import Any, Dict, Optional

from config import get_config
from db.jobs_reader import ORDER_BY_UPDATED, get_connection, query_jobs, query_jobs_with_customers
from models.result import handle_tool_errors, success_result
from models.status import JobStatus
from schemas.common import EmptyRequest, LimitRequest
from schemas.reports import DashboardStats, QuickActionCounts, RecentActivity
from tools.invoices import paid_rows_in_month
from utils.clock import Clock, resolve_clock
from utils.money import parse_stored_amount, sum_amounts
from utils.validation import validate_limit
from utils.workflow import is_active_job, is_estimate


@handle_tool_errors("get dashboard stats")
def get_dashboard_stats(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard.

    Returns:
        Success envelope with pending estimate and active job counts, unpaid
        invoice count and total, and revenue collected this month
    """
    request = EmptyRequest.model_validate(args)
    day = resolve_clock(clock)().date()

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, order_by=ORDER_BY_UPDATED)

    unpaid = [row for row in rows if row["status"] == JobStatus.INVOICED.value]
    paid_this_month = paid_rows_in_month(rows, day.year, day.month)

    stats = DashboardStats(
        pending_estimates=sum(1 for row in rows if is_estimate(row["status"])),
        active_jobs=sum(1 for row in rows if is_active_job(row["status"])),
        unpaid_invoices=len(unpaid),
        unpaid_total=sum_amounts(parse_stored_amount(row["total_amount"]) for row in unpaid),
        monthly_revenue=sum_amounts(
            parse_stored_amount(row["total_amount"]) for row in paid_this_month
        ),
    )
    return success_result(stats)


@handle_tool_errors("get quick action counts")
def get_quick_action_counts(args: Dict[str, Any]) -> Dict[str, Any]:
    """How many jobs wait on each next lifecycle step."""
    request = EmptyRequest.model_validate(args)

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, order_by=ORDER_BY_UPDATED)

    by_status = Counter(row["status"] for row in rows)
    counts = QuickActionCounts(
        estimates_to_send=by_status[JobStatus.ESTIMATE_CREATED.value],
        jobs_to_start=by_status[JobStatus.APPROVED.value],
        jobs_to_complete=by_status[JobStatus.IN_PROGRESS.value],
        jobs_to_invoice=by_status[JobStatus.COMPLETED.value],
        invoices_to_collect=by_status[JobStatus.INVOICED.value],
    )
    return success_result(counts)


def _activity(row: Dict[str, Any]) -> RecentActivity:
    status = row["status"]
    fallback_date = (row.get("updated_at") or "")[:10] or None

    if status == JobStatus.PAID.value:
        activity_type = "payment"
        title = f"Payment received for Invoice #{row['invoice_number'] or row['estimate_number']}"
        activity_date = row["payment_date"] or fallback_date
    elif status == JobStatus.INVOICED.value:
        activity_type = "invoice"
        title = f"Invoice #{row['invoice_number'] or row['estimate_number']} created"
        activity_date = row["invoice_date"] or fallback_date
    elif is_estimate(status):
        activity_type = "estimate"
        verb = "sent" if status == JobStatus.ESTIMATE_SENT.value else "created"
        title = f"Estimate #{row['estimate_number']} {verb}"
        activity_date = row["estimate_date"] or fallback_date
    else:
        activity_type = "job"
        title = f"Job #{row['estimate_number']} - {status}"
        activity_date = row["approval_date"] or row["estimate_date"] or fallback_date

    return RecentActivity(
        id=row["id"],
        type=activity_type,
        title=title,
        customer_name=row["customer_name"],
        amount=parse_stored_amount(row["total_amount"]),
        date=activity_date,
        status=status,
    )


@handle_tool_errors("get recent activity")
def get_recent_activity(args: Dict[str, Any]) -> Dict[str, Any]:
    """The most recently updated jobs described as activity feed entries."""
    request = LimitRequest.model_validate(args)
    limit = validate_limit(request.limit, default=get_config().recent_limit)

    with get_connection(request.db_path) as conn:
        rows = query_jobs_with_customers(conn, order_by=ORDER_BY_UPDATED, limit=limit)

    return success_result([_activity(row) for row in rows])
