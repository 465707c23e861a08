"""
Invoice aging: derived, read-time-only overdue computation.

Nothing here is persisted. Tools call ``calculate_overdue_status`` on every
fetch so the answer always reflects the current date.
"""

from datetime import date, datetime
from typing import NamedTuple, Optional, Union

from utils.workflow import is_paid

DEFAULT_OVERDUE_AFTER_DAYS = 30

DateLike = Union[date, datetime, str, None]


class OverdueStatus(NamedTuple):
    is_overdue: bool
    days_overdue: int
    days_since_invoice: int


NOT_OVERDUE = OverdueStatus(is_overdue=False, days_overdue=0, days_since_invoice=0)


def _to_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def calculate_overdue_status(
    status,
    invoice_date: DateLike,
    payment_date: DateLike,
    today: DateLike,
    overdue_after_days: int = DEFAULT_OVERDUE_AFTER_DAYS,
) -> OverdueStatus:
    """
    Compute whether an invoice is overdue and by how many days.

    Paid invoices and jobs without an invoice date are never overdue.
    ``payment_date`` is accepted for completeness; a Paid status already
    settles the question.

    Examples:
        >>> calculate_overdue_status("Invoiced", "2025-01-01", None, "2025-02-01")
        OverdueStatus(is_overdue=True, days_overdue=1, days_since_invoice=31)
        >>> calculate_overdue_status("Paid", "2025-01-01", "2025-03-01", "2025-06-01")
        OverdueStatus(is_overdue=False, days_overdue=0, days_since_invoice=0)
    """
    invoiced_on = _to_date(invoice_date)
    if is_paid(status) or invoiced_on is None:
        return NOT_OVERDUE

    days_since_invoice = (_to_date(today) - invoiced_on).days
    is_overdue = days_since_invoice > overdue_after_days
    days_overdue = days_since_invoice - overdue_after_days if is_overdue else 0
    return OverdueStatus(
        is_overdue=is_overdue,
        days_overdue=days_overdue,
        days_since_invoice=days_since_invoice,
    )
