"""Pydantic schemas for report and dashboard tools."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

from schemas.common import DbPathMixin, StrictIgnoreRequest, StrictResponse
from schemas.records import CustomerRecord, CustomerStats, JobRecord, LineItemRecord


class GlobalSearchRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for global_search. Every filter is optional."""

    term: Optional[str] = None
    status: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    amount_min: Any = None
    amount_max: Any = None
    customer_id: Any = None


class YearRequest(DbPathMixin, StrictIgnoreRequest):
    year: Any = None


class CustomerIdRequest(DbPathMixin, StrictIgnoreRequest):
    customer_id: Any = None


class SearchResult(StrictResponse):
    id: int
    type: Literal["customer", "job", "estimate", "invoice"]
    title: str
    subtitle: str
    amount: Decimal
    date: Optional[str] = None
    status: str
    customer_id: int
    customer_name: str


class MonthRevenue(StrictResponse):
    month: int
    month_name: str
    revenue: Decimal
    count: int


class MonthlyRevenueReport(StrictResponse):
    year: int
    months: list[MonthRevenue]
    total_revenue: Decimal
    total_jobs: int


class OutstandingInvoice(StrictResponse):
    id: int
    invoice_number: Optional[str] = None
    estimate_number: str
    invoice_date: Optional[str] = None
    total_amount: Decimal
    customer_name: str
    customer_phone: str
    is_overdue: bool
    days_since_invoice: int
    days_overdue: int


class JobWithLineItems(JobRecord):
    line_items: list[LineItemRecord] = []


class CustomerHistoryReport(StrictResponse):
    customer: CustomerRecord
    jobs: list[JobWithLineItems]
    stats: CustomerStats


class TopCustomer(StrictResponse):
    customer_id: int
    customer_name: str
    customer_phone: str
    total_revenue: Decimal
    total_jobs: int
    paid_jobs: int


class DashboardStats(StrictResponse):
    pending_estimates: int
    active_jobs: int
    unpaid_invoices: int
    unpaid_total: Decimal
    monthly_revenue: Decimal


class QuickActionCounts(StrictResponse):
    estimates_to_send: int
    jobs_to_start: int
    jobs_to_complete: int
    jobs_to_invoice: int
    invoices_to_collect: int


class RecentActivity(StrictResponse):
    id: int
    type: Literal["estimate", "job", "invoice", "payment"]
    title: str
    customer_name: str
    amount: Decimal
    date: Optional[str] = None
    status: str
