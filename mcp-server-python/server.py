#!/usr/bin/env python3
"""
MCP Server entry point for the JobLedger contractor ledger.

This server exposes the job lifecycle (estimate -> approval -> execution ->
invoicing -> payment) as MCP tools backed by a SQLite database. Every tool
returns {"success": true, "data": ...} or {"success": false, "error": ...,
"code": ..., "retryable": ...}.

Usage:
    python server.py

The server runs in stdio mode by default, which is the standard transport
for MCP servers that are invoked by LLM agents.
"""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from config import get_config
from db.schema import initialize_database
from tools import customers, dashboard, estimates, invoices, jobs, reports

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "This server manages a contractor's jobs from estimate to paid invoice. "
        "\n\n"
        "LIFECYCLE:\n"
        "Estimate Created -> Estimate Sent -> Approved -> In Progress -> Completed -> Invoiced -> Paid. "
        "Status only moves one step forward; approve_estimate may also approve an unsent estimate. "
        "Use create_invoice (not update_job_status) to invoice a completed job and record_payment "
        "to mark an invoice paid. Estimates can be edited or deleted only before approval."
        "\n\n"
        "CUSTOMERS AND REPORTS:\n"
        "Create a customer before creating an estimate for them. "
        "Dashboard and report tools are read-only."
    ),
)


def _args(**kwargs: Any) -> dict:
    """Only pass explicitly provided parameters so tool handlers apply their own defaults."""
    return {key: value for key, value in kwargs.items() if value is not None}


# ============================================================================
# Estimates
# ============================================================================


@mcp.tool(
    name="create_estimate",
    description=(
        "Create an estimate for an existing customer. Requires at least one line item with "
        "action (max 100 chars), non-negative amount and description. Mints a YYMMDDTRRRL "
        "estimate number and stamps today's estimate date."
    ),
)
def create_estimate_tool(
    customer_id: int,
    line_items: list[dict],
    notes: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Create an estimate.

    Args:
        customer_id: Existing customer ID.
        line_items: [{"action": str, "amount": number|str, "description": str}, ...]
        notes: Optional free text.
        db_path: Optional database path override (default: data/jobledger.db).
    """
    return estimates.create_estimate(
        _args(customer_id=customer_id, line_items=line_items, notes=notes, db_path=db_path)
    )


@mcp.tool(
    name="update_estimate",
    description=(
        "Replace an unapproved estimate's line items (renumbered, total recomputed) "
        "and/or its notes."
    ),
)
def update_estimate_tool(
    id: int,
    line_items: list[dict] | None = None,
    notes: str | None = None,
    db_path: str | None = None,
) -> dict:
    return estimates.update_estimate(
        _args(id=id, line_items=line_items, notes=notes, db_path=db_path)
    )


@mcp.tool(name="delete_estimate", description="Delete an unapproved estimate and its line items.")
def delete_estimate_tool(id: int, db_path: str | None = None) -> dict:
    return estimates.delete_estimate(_args(id=id, db_path=db_path))


@mcp.tool(name="mark_estimate_sent", description="Move an estimate from Estimate Created to Estimate Sent.")
def mark_estimate_sent_tool(id: int, db_path: str | None = None) -> dict:
    return estimates.mark_estimate_sent(_args(id=id, db_path=db_path))


@mcp.tool(
    name="approve_estimate",
    description="Approve an estimate (from Estimate Created or Estimate Sent), stamping the approval date.",
)
def approve_estimate_tool(id: int, db_path: str | None = None) -> dict:
    return estimates.approve_estimate(_args(id=id, db_path=db_path))


@mcp.tool(name="get_estimate", description="Get one estimate with customer, line items and aging.")
def get_estimate_tool(id: int, db_path: str | None = None) -> dict:
    return estimates.get_estimate(_args(id=id, db_path=db_path))


@mcp.tool(name="list_estimates", description="List estimates not yet approved, newest first.")
def list_estimates_tool(db_path: str | None = None) -> dict:
    return estimates.list_estimates(_args(db_path=db_path))


@mcp.tool(
    name="search_estimates",
    description="Search unapproved estimates by estimate number, notes or customer name.",
)
def search_estimates_tool(term: str | None = None, db_path: str | None = None) -> dict:
    return estimates.search_estimates(_args(term=term, db_path=db_path))


@mcp.tool(
    name="get_estimate_stats",
    description="Pending estimate count/value, this month's estimates and conversion rate.",
)
def get_estimate_stats_tool(db_path: str | None = None) -> dict:
    return estimates.get_estimate_stats(_args(db_path=db_path))


# ============================================================================
# Jobs
# ============================================================================


@mcp.tool(
    name="update_job_status",
    description=(
        "Move a job to the next status in order, stamping its milestone date. "
        "Invoiced and Paid are reached via create_invoice and record_payment."
    ),
)
def update_job_status_tool(id: int, status: str, db_path: str | None = None) -> dict:
    """
    Advance a job one status.

    Args:
        id: Job ID.
        status: Requested status; must be the immediate successor of the current one.
        db_path: Optional database path override.
    """
    return jobs.update_job_status(_args(id=id, status=status, db_path=db_path))


@mcp.tool(name="start_job", description="Move a job from Approved to In Progress.")
def start_job_tool(id: int, db_path: str | None = None) -> dict:
    return jobs.start_job(_args(id=id, db_path=db_path))


@mcp.tool(name="complete_job", description="Move a job from In Progress to Completed.")
def complete_job_tool(id: int, db_path: str | None = None) -> dict:
    return jobs.complete_job(_args(id=id, db_path=db_path))


@mcp.tool(name="update_job_notes", description="Replace a job's notes. Blank notes clear them.")
def update_job_notes_tool(id: int, notes: str = "", db_path: str | None = None) -> dict:
    return jobs.update_job_notes(_args(id=id, notes=notes, db_path=db_path))


@mcp.tool(name="get_job", description="Get one job with customer, line items and aging.")
def get_job_tool(id: int, db_path: str | None = None) -> dict:
    return jobs.get_job(_args(id=id, db_path=db_path))


@mcp.tool(
    name="list_jobs",
    description=(
        "List jobs past the estimate stage. scope: all (default), active, completed (paid). "
        "An explicit status overrides the scope."
    ),
)
def list_jobs_tool(
    scope: str | None = None, status: str | None = None, db_path: str | None = None
) -> dict:
    return jobs.list_jobs(_args(scope=scope, status=status, db_path=db_path))


@mcp.tool(name="get_recent_jobs", description="Most recently updated jobs of any status.")
def get_recent_jobs_tool(limit: int | None = None, db_path: str | None = None) -> dict:
    return jobs.get_recent_jobs(_args(limit=limit, db_path=db_path))


@mcp.tool(name="get_job_stats", description="Active, in-progress and completed job counts and active value.")
def get_job_stats_tool(db_path: str | None = None) -> dict:
    return jobs.get_job_stats(_args(db_path=db_path))


# ============================================================================
# Invoices
# ============================================================================


@mcp.tool(
    name="create_invoice",
    description="Invoice a completed job: mints a YYMMDDSSS invoice number and stamps the invoice date.",
)
def create_invoice_tool(id: int, db_path: str | None = None) -> dict:
    return invoices.create_invoice(_args(id=id, db_path=db_path))


@mcp.tool(
    name="record_payment",
    description=(
        "Mark an invoice as paid. payment_date (YYYY-MM-DD) defaults to today and "
        "cannot precede the invoice date."
    ),
)
def record_payment_tool(
    id: int, payment_date: str | None = None, db_path: str | None = None
) -> dict:
    return invoices.record_payment(_args(id=id, payment_date=payment_date, db_path=db_path))


@mcp.tool(name="update_invoice_notes", description="Replace an unpaid invoice's notes.")
def update_invoice_notes_tool(id: int, notes: str = "", db_path: str | None = None) -> dict:
    return invoices.update_invoice_notes(_args(id=id, notes=notes, db_path=db_path))


@mcp.tool(name="get_invoice", description="Get one invoice with customer, line items and aging.")
def get_invoice_tool(id: int, db_path: str | None = None) -> dict:
    return invoices.get_invoice(_args(id=id, db_path=db_path))


@mcp.tool(name="list_invoices", description="List invoices. scope: all (default), unpaid, overdue.")
def list_invoices_tool(scope: str | None = None, db_path: str | None = None) -> dict:
    return invoices.list_invoices(_args(scope=scope, db_path=db_path))


@mcp.tool(
    name="get_invoice_stats",
    description="Unpaid, overdue and paid invoice counts and totals, plus average days to pay.",
)
def get_invoice_stats_tool(db_path: str | None = None) -> dict:
    return invoices.get_invoice_stats(_args(db_path=db_path))


@mcp.tool(name="get_monthly_revenue", description="Revenue collected in a month (default: current month).")
def get_monthly_revenue_tool(
    year: int | None = None, month: int | None = None, db_path: str | None = None
) -> dict:
    return invoices.get_monthly_revenue(_args(year=year, month=month, db_path=db_path))


# ============================================================================
# Customers
# ============================================================================


@mcp.tool(
    name="create_customer",
    description="Create a customer. phone must have 10 digits and is stored as (XXX) XXX-XXXX; duplicates are rejected.",
)
def create_customer_tool(
    name: str,
    phone: str,
    email: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    db_path: str | None = None,
) -> dict:
    return customers.create_customer(
        _args(name=name, phone=phone, email=email, address=address, notes=notes, db_path=db_path)
    )


@mcp.tool(name="update_customer", description="Update the provided fields of a customer.")
def update_customer_tool(
    id: int,
    name: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    db_path: str | None = None,
) -> dict:
    return customers.update_customer(
        _args(
            id=id, name=name, phone=phone, email=email, address=address, notes=notes, db_path=db_path
        )
    )


@mcp.tool(name="delete_customer", description="Delete a customer that has no jobs.")
def delete_customer_tool(id: int, db_path: str | None = None) -> dict:
    return customers.delete_customer(_args(id=id, db_path=db_path))


@mcp.tool(name="get_customer", description="Get a customer with all of their jobs.")
def get_customer_tool(id: int, db_path: str | None = None) -> dict:
    return customers.get_customer(_args(id=id, db_path=db_path))


@mcp.tool(name="list_customers", description="List all customers, newest first.")
def list_customers_tool(db_path: str | None = None) -> dict:
    return customers.list_customers(_args(db_path=db_path))


@mcp.tool(name="search_customers", description="Search customers by name, phone, email or address.")
def search_customers_tool(term: str | None = None, db_path: str | None = None) -> dict:
    return customers.search_customers(_args(term=term, db_path=db_path))


@mcp.tool(name="get_customer_stats", description="Job counts, revenue and unpaid amount for a customer.")
def get_customer_stats_tool(id: int, db_path: str | None = None) -> dict:
    return customers.get_customer_stats(_args(id=id, db_path=db_path))


# ============================================================================
# Dashboard and reports
# ============================================================================


@mcp.tool(name="get_dashboard_stats", description="Headline dashboard numbers.")
def get_dashboard_stats_tool(db_path: str | None = None) -> dict:
    return dashboard.get_dashboard_stats(_args(db_path=db_path))


@mcp.tool(name="get_quick_action_counts", description="How many jobs wait on each next lifecycle step.")
def get_quick_action_counts_tool(db_path: str | None = None) -> dict:
    return dashboard.get_quick_action_counts(_args(db_path=db_path))


@mcp.tool(name="get_recent_activity", description="Recent lifecycle activity entries.")
def get_recent_activity_tool(limit: int | None = None, db_path: str | None = None) -> dict:
    return dashboard.get_recent_activity(_args(limit=limit, db_path=db_path))


@mcp.tool(
    name="global_search",
    description=(
        "Search estimates, jobs, invoices and customers. Filters: term, status, "
        "date_from/date_to (estimate date), amount_min/amount_max, customer_id."
    ),
)
def global_search_tool(
    term: str | None = None,
    status: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    amount_min: float | None = None,
    amount_max: float | None = None,
    customer_id: int | None = None,
    db_path: str | None = None,
) -> dict:
    return reports.global_search(
        _args(
            term=term,
            status=status,
            date_from=date_from,
            date_to=date_to,
            amount_min=amount_min,
            amount_max=amount_max,
            customer_id=customer_id,
            db_path=db_path,
        )
    )


@mcp.tool(name="get_monthly_revenue_report", description="Paid revenue per month for a year.")
def get_monthly_revenue_report_tool(year: int | None = None, db_path: str | None = None) -> dict:
    return reports.get_monthly_revenue_report(_args(year=year, db_path=db_path))


@mcp.tool(name="get_outstanding_invoices_report", description="Unpaid invoices with aging, oldest first.")
def get_outstanding_invoices_report_tool(db_path: str | None = None) -> dict:
    return reports.get_outstanding_invoices_report(_args(db_path=db_path))


@mcp.tool(name="get_customer_history_report", description="A customer's jobs with line items and totals.")
def get_customer_history_report_tool(customer_id: int, db_path: str | None = None) -> dict:
    return reports.get_customer_history_report(_args(customer_id=customer_id, db_path=db_path))


@mcp.tool(name="get_top_customers_report", description="Customers ranked by paid revenue.")
def get_top_customers_report_tool(limit: int | None = None, db_path: str | None = None) -> dict:
    return reports.get_top_customers_report(_args(limit=limit, db_path=db_path))


def main():
    """
    Main entry point for the MCP server.

    Creates the database schema if needed, then runs the server in stdio
    mode, the standard transport for MCP servers invoked by LLM agents.
    """
    config.setup_logging()

    logger = logging.getLogger(__name__)
    logger.info("Starting JobLedger MCP Server")
    logger.info(f"Server name: {config.server_name}")
    logger.info(f"Database path: {config.db_path}")

    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    initialize_database(config.get_db_path_str())

    logger.info("Server starting in stdio mode")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
