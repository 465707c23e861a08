"""Tests for the dashboard tools."""

from conftest import insert_job
from tools.dashboard import get_dashboard_stats, get_quick_action_counts, get_recent_activity


def _seed(db_path, customer_id):
    insert_job(db_path, customer_id, "250701T100A", amounts=("10.00",),
               updated_at="2025-07-01T08:00:00.000Z")
    insert_job(db_path, customer_id, "250701T200B", status="Estimate Sent", amounts=("20.00",),
               updated_at="2025-07-01T09:00:00.000Z")
    insert_job(db_path, customer_id, "250601T100A", status="Approved", amounts=("30.00",),
               approval_date="2025-06-03", updated_at="2025-07-02T08:00:00.000Z")
    insert_job(db_path, customer_id, "250602T100A", status="Invoiced", amounts=("40.00",),
               invoice_number="250620001", invoice_date="2025-06-20",
               updated_at="2025-07-03T08:00:00.000Z")
    insert_job(db_path, customer_id, "250603T100A", status="Paid", amounts=("50.00",),
               invoice_number="250621001", invoice_date="2025-06-21", payment_date="2025-07-04",
               updated_at="2025-07-04T08:00:00.000Z")


def test_dashboard_stats(db_path, customer_id, clock):
    _seed(db_path, customer_id)
    assert get_dashboard_stats({"db_path": db_path}, clock=clock)["data"] == {
        "pending_estimates": 2,
        "active_jobs": 2,
        "unpaid_invoices": 1,
        "unpaid_total": "40.00",
        "monthly_revenue": "50.00",
    }


def test_quick_action_counts(db_path, customer_id):
    _seed(db_path, customer_id)
    assert get_quick_action_counts({"db_path": db_path})["data"] == {
        "estimates_to_send": 1,
        "jobs_to_start": 1,
        "jobs_to_complete": 0,
        "jobs_to_invoice": 0,
        "invoices_to_collect": 1,
    }


def test_recent_activity_feed(db_path, customer_id):
    _seed(db_path, customer_id)
    data = get_recent_activity({"db_path": db_path})["data"]

    assert [entry["type"] for entry in data] == ["payment", "invoice", "job", "estimate", "estimate"]
    assert data[0]["title"] == "Payment received for Invoice #250621001"
    assert data[0]["date"] == "2025-07-04"
    assert data[1]["title"] == "Invoice #250620001 created"
    assert data[2]["title"] == "Job #250601T100A - Approved"
    assert data[2]["date"] == "2025-06-03"
    assert data[3]["title"] == "Estimate #250701T200B sent"
    assert data[4]["title"] == "Estimate #250701T100A created"
    assert data[0]["customer_name"] == "Jane Homeowner"


def test_recent_activity_limit(db_path, customer_id):
    _seed(db_path, customer_id)
    assert len(get_recent_activity({"db_path": db_path, "limit": 2})["data"]) == 2
    assert get_recent_activity({"db_path": db_path, "limit": 0})["code"] == "VALIDATION_ERROR"


def test_empty_ledger(db_path, clock):
    stats = get_dashboard_stats({"db_path": db_path}, clock=clock)["data"]
    assert stats["unpaid_total"] == "0.00"
    assert get_recent_activity({"db_path": db_path})["data"] == []
