"""Record schemas returned by ledger read queries and mutations.

Database rows are mapped through these models so every tool returns a fixed,
JSON-serializable schema: Decimal amounts dump as strings ("350.50") and
dates as ISO strings.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from models.status import JobStatus
from schemas.common import RowRecord, StrictResponse
from utils.money import parse_stored_amount


class LineItemRecord(RowRecord):
    """One billable entry of a job, ordered by item_number."""

    id: int
    job_id: int
    item_number: int
    action: str
    amount: Decimal
    description: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value):
        return parse_stored_amount(value)


class CustomerSummary(RowRecord):
    """Customer fields embedded in job responses."""

    id: int
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


class CustomerRecord(CustomerSummary):
    """Full customer row."""

    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class JobRecord(RowRecord):
    """A job row: estimate, job or invoice depending on status."""

    id: int
    customer_id: int
    estimate_number: str
    invoice_number: Optional[str] = None
    status: JobStatus
    estimate_date: Optional[date] = None
    approval_date: Optional[date] = None
    start_date: Optional[date] = None
    completion_date: Optional[date] = None
    invoice_date: Optional[date] = None
    payment_date: Optional[date] = None
    total_amount: Decimal
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("total_amount", mode="before")
    @classmethod
    def parse_total(cls, value):
        return parse_stored_amount(value)


class JobDetails(JobRecord):
    """A job populated with its customer, line items and aging annotation."""

    customer: Optional[CustomerSummary] = None
    line_items: list[LineItemRecord] = []
    is_overdue: bool = False
    days_overdue: int = 0


class CustomerWithJobs(CustomerRecord):
    """Customer row plus every job recorded for them."""

    jobs: list[JobRecord] = []


class CustomerStats(StrictResponse):
    total_jobs: int
    completed_jobs: int
    active_jobs: int
    pending_estimates: int
    total_revenue: Decimal
    unpaid_amount: Decimal
