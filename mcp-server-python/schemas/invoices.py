"""Pydantic schemas for invoice tools."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

from schemas.common import DbPathMixin, RecordIdRequest, StrictIgnoreRequest, StrictResponse


class RecordPaymentRequest(RecordIdRequest):
    """Request schema for record_payment. ``payment_date`` defaults to today."""

    payment_date: Optional[str] = None


class ListInvoicesRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_invoices."""

    scope: Literal["all", "unpaid", "overdue"] = "all"


class MonthlyRevenueRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for get_monthly_revenue. Defaults to the current month."""

    year: Any = None
    month: Any = None


class InvoiceStats(StrictResponse):
    """Response schema for get_invoice_stats."""

    unpaid_count: int
    unpaid_total: Decimal
    overdue_count: int
    overdue_total: Decimal
    paid_count: int
    paid_total: Decimal
    average_days_to_pay: int


class MonthlyRevenue(StrictResponse):
    """Response schema for get_monthly_revenue."""

    year: int
    month: int
    revenue: Decimal
    count: int
