"""
Report tools: global search, revenue by month, outstanding invoices,
customer history and top customers.

All reports are read-only and computed from the jobs table at request time.
"""

import calendar
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional

from config import get_config
from db.jobs_reader import (
    ORDER_BY_CREATED,
    ORDER_BY_INVOICE_DATE_ASC,
    ORDER_BY_UPDATED,
    find_customer_by_id,
    find_line_items_by_job_id,
    get_connection,
    query_customers,
    query_jobs,
    query_jobs_with_customers,
)
from models.errors import create_not_found_error
from models.result import handle_tool_errors, success_result
from models.status import JobStatus
from schemas.common import EmptyRequest, LimitRequest
from schemas.records import CustomerRecord
from schemas.reports import (
    CustomerHistoryReport,
    CustomerIdRequest,
    GlobalSearchRequest,
    JobWithLineItems,
    MonthlyRevenueReport,
    MonthRevenue,
    OutstandingInvoice,
    SearchResult,
    TopCustomer,
    YearRequest,
)
from tools.customers import build_customer_stats
from tools.invoices import paid_rows_in_month
from utils.aging import calculate_overdue_status
from utils.clock import Clock, resolve_clock
from utils.money import ZERO, parse_stored_amount, sum_amounts
from utils.validation import (
    validate_amount_filter,
    validate_job_id,
    validate_limit,
    validate_optional_iso_date,
    validate_search_term,
    validate_status,
    validate_year,
)
from utils.workflow import is_estimate, is_invoiced, is_paid

CUSTOMER_SEARCH_LIMIT = 20
TOP_CUSTOMERS_DEFAULT_LIMIT = 10


def _matches_term(row: Dict[str, Any], term: str) -> bool:
    needle = term.lower()
    haystack = (
        row.get("estimate_number"),
        row.get("invoice_number"),
        row.get("notes"),
        row.get("customer_name"),
    )
    return any(value and needle in value.lower() for value in haystack)


def _job_search_result(row: Dict[str, Any]) -> SearchResult:
    status = row["status"]
    if is_estimate(status):
        result_type = "estimate"
        title = f"Estimate #{row['estimate_number']}"
        result_date = row["estimate_date"]
    elif is_invoiced(status):
        result_type = "invoice"
        title = f"Invoice #{row['invoice_number'] or row['estimate_number']}"
        result_date = row["invoice_date"] or row["estimate_date"]
    else:
        result_type = "job"
        title = f"Job #{row['estimate_number']}"
        result_date = row["estimate_date"]

    return SearchResult(
        id=row["id"],
        type=result_type,
        title=title,
        subtitle=row["customer_name"],
        amount=parse_stored_amount(row["total_amount"]),
        date=result_date,
        status=status,
        customer_id=row["customer_id"],
        customer_name=row["customer_name"],
    )


def _customer_search_result(row: Dict[str, Any]) -> SearchResult:
    created_at = row.get("created_at") or ""
    return SearchResult(
        id=row["id"],
        type="customer",
        title=row["name"],
        subtitle=row["phone"],
        amount=ZERO,
        date=created_at[:10] or None,
        status="Active",
        customer_id=row["id"],
        customer_name=row["name"],
    )


@handle_tool_errors("search")
def global_search(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Search estimates, jobs, invoices and customers at once.

    Job filters combine with AND: ``term`` (estimate/invoice number, notes,
    customer name), ``status`` ("all" means no filter), ``date_from`` and
    ``date_to`` on the estimate date, ``amount_min``/``amount_max`` on the
    total, and ``customer_id``. Customers are only searched when a term is
    given.

    Returns:
        Success envelope with job results (most recently updated first)
        followed by customer results
    """
    request = GlobalSearchRequest.model_validate(args)
    term = validate_search_term(request.term)
    status = None
    if request.status is not None and request.status != "all":
        status = validate_status(request.status)
    date_from = validate_optional_iso_date(request.date_from, "date_from")
    date_to = validate_optional_iso_date(request.date_to, "date_to")
    amount_min = validate_amount_filter(request.amount_min, "amount_min")
    amount_max = validate_amount_filter(request.amount_max, "amount_max")
    customer_id = (
        validate_job_id(request.customer_id, label="customer ID")
        if request.customer_id is not None
        else None
    )

    with get_connection(request.db_path) as conn:
        job_rows = query_jobs_with_customers(
            conn, {status} if status else None, order_by=ORDER_BY_UPDATED
        )
        customer_rows = query_customers(conn, term, limit=CUSTOMER_SEARCH_LIMIT) if term else []

    results: List[SearchResult] = []
    for row in job_rows:
        estimate_date = date.fromisoformat(row["estimate_date"]) if row["estimate_date"] else None
        amount = parse_stored_amount(row["total_amount"])
        if term and not _matches_term(row, term):
            continue
        if customer_id is not None and row["customer_id"] != customer_id:
            continue
        if date_from and (estimate_date is None or estimate_date < date_from):
            continue
        if date_to and (estimate_date is None or estimate_date > date_to):
            continue
        if amount_min is not None and amount < amount_min:
            continue
        if amount_max is not None and amount > amount_max:
            continue
        results.append(_job_search_result(row))
        if len(results) >= get_config().search_limit:
            break

    results.extend(_customer_search_result(row) for row in customer_rows)
    return success_result(results)


@handle_tool_errors("get monthly revenue report")
def get_monthly_revenue_report(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Paid revenue and invoice count for each month of a year (default current)."""
    request = YearRequest.model_validate(args)
    year = validate_year(request.year, default=resolve_clock(clock)().year)

    with get_connection(request.db_path) as conn:
        rows = query_jobs(conn, {JobStatus.PAID}, order_by=ORDER_BY_UPDATED)

    months = []
    for month in range(1, 13):
        paid = paid_rows_in_month(rows, year, month)
        months.append(
            MonthRevenue(
                month=month,
                month_name=calendar.month_name[month],
                revenue=sum_amounts(parse_stored_amount(row["total_amount"]) for row in paid),
                count=len(paid),
            )
        )

    report = MonthlyRevenueReport(
        year=year,
        months=months,
        total_revenue=sum_amounts(m.revenue for m in months),
        total_jobs=sum(m.count for m in months),
    )
    return success_result(report)


@handle_tool_errors("get outstanding invoices report")
def get_outstanding_invoices_report(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Unpaid invoices, oldest first, with days since invoicing and days overdue."""
    request = EmptyRequest.model_validate(args)
    day = resolve_clock(clock)().date()
    overdue_days = get_config().overdue_days

    with get_connection(request.db_path) as conn:
        rows = query_jobs_with_customers(
            conn, {JobStatus.INVOICED}, order_by=ORDER_BY_INVOICE_DATE_ASC
        )

    report = []
    for row in rows:
        aging = calculate_overdue_status(
            row["status"], row["invoice_date"], row["payment_date"], day, overdue_days
        )
        report.append(
            OutstandingInvoice(
                id=row["id"],
                invoice_number=row["invoice_number"],
                estimate_number=row["estimate_number"],
                invoice_date=row["invoice_date"],
                total_amount=parse_stored_amount(row["total_amount"]),
                customer_name=row["customer_name"],
                customer_phone=row["customer_phone"],
                is_overdue=aging.is_overdue,
                days_since_invoice=aging.days_since_invoice,
                days_overdue=aging.days_overdue,
            )
        )
    return success_result(report)


@handle_tool_errors("get customer history report")
def get_customer_history_report(args: Dict[str, Any]) -> Dict[str, Any]:
    """A customer, all of their jobs with line items (newest first), and totals."""
    request = CustomerIdRequest.model_validate(args)
    customer_id = validate_job_id(request.customer_id, label="customer ID")

    with get_connection(request.db_path) as conn:
        customer_row = find_customer_by_id(conn, customer_id)
        if customer_row is None:
            raise create_not_found_error("Customer", customer_id)
        job_rows = query_jobs(conn, order_by=ORDER_BY_CREATED, customer_id=customer_id)
        jobs = [
            JobWithLineItems.model_validate(
                {**row, "line_items": find_line_items_by_job_id(conn, row["id"])}
            )
            for row in job_rows
        ]

    report = CustomerHistoryReport(
        customer=CustomerRecord.model_validate(customer_row),
        jobs=jobs,
        stats=build_customer_stats(job_rows),
    )
    return success_result(report)


@handle_tool_errors("get top customers report")
def get_top_customers_report(args: Dict[str, Any]) -> Dict[str, Any]:
    """Customers ranked by paid revenue. Ties keep the lower customer id first."""
    request = LimitRequest.model_validate(args)
    limit = validate_limit(request.limit, default=TOP_CUSTOMERS_DEFAULT_LIMIT)

    with get_connection(request.db_path) as conn:
        rows = query_jobs_with_customers(conn, order_by=ORDER_BY_CREATED)

    grouped: "OrderedDict[int, List[Dict[str, Any]]]" = OrderedDict()
    for row in sorted(rows, key=lambda r: r["customer_id"]):
        grouped.setdefault(row["customer_id"], []).append(row)

    ranking = [
        TopCustomer(
            customer_id=customer_id,
            customer_name=customer_rows[0]["customer_name"],
            customer_phone=customer_rows[0]["customer_phone"],
            total_revenue=sum_amounts(
                parse_stored_amount(row["total_amount"])
                for row in customer_rows
                if is_paid(row["status"])
            ),
            total_jobs=len(customer_rows),
            paid_jobs=sum(1 for row in customer_rows if is_paid(row["status"])),
        )
        for customer_id, customer_rows in grouped.items()
    ]
    # Stable sort keeps ascending customer id within equal revenue
    ranking.sort(key=lambda entry: entry.total_revenue, reverse=True)
    return success_result(ranking[:limit])
