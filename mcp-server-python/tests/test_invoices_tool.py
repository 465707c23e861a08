"""
Tests for the invoice tools: invoicing, payment, invoice notes, aging and
the invoice read queries.
"""

import re
from datetime import datetime

from conftest import fetch_job, insert_job
from tools.invoices import (
    create_invoice,
    get_invoice,
    get_invoice_stats,
    get_monthly_revenue,
    list_invoices,
    record_payment,
    update_invoice_notes,
)
from utils.clock import fixed_clock


class TestCreateInvoice:
    def test_invoices_completed_job(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Completed")

        result = create_invoice({"db_path": db_path, "id": job_id}, clock=clock)

        assert result["success"] is True
        data = result["data"]
        assert re.match(r"^250705\d{3}$", data["invoice_number"])
        assert data["invoice_number"] == "250705001"
        assert data["status"] == "Invoiced"
        assert data["invoice_date"] == "2025-07-05"
        assert data["is_overdue"] is False

    def test_sequence_counts_todays_invoices(self, db_path, customer_id, clock):
        insert_job(db_path, customer_id, "250701T100A", status="Invoiced", invoice_number="250705001")
        insert_job(db_path, customer_id, "250701T200B", status="Paid", invoice_number="250704001")
        job_id = insert_job(db_path, customer_id, "250701T300C", status="Completed")

        result = create_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["data"]["invoice_number"] == "250705002"

    def test_taken_number_is_skipped(self, db_path, customer_id, clock):
        # One invoice today, but its number is 002: the first mint (002) collides
        insert_job(db_path, customer_id, "250701T100A", status="Invoiced", invoice_number="250705002")
        job_id = insert_job(db_path, customer_id, "250701T200B", status="Completed")

        result = create_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["success"] is True
        assert result["data"]["invoice_number"] == "250705003"

    def test_requires_completed_status(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="In Progress")
        result = create_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["code"] == "STATE_ERROR"
        assert "'In Progress' to 'Invoiced'" in result["error"]
        assert fetch_job(db_path, job_id)["invoice_number"] is None

    def test_cannot_invoice_twice(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Completed")
        create_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        result = create_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["code"] == "STATE_ERROR"
        assert fetch_job(db_path, job_id)["invoice_number"] == "250705001"


class TestRecordPayment:
    def test_payment_defaults_to_today(self, db_path, customer_id, clock):
        job_id = insert_job(
            db_path, customer_id, "250701T100A", status="Invoiced",
            invoice_number="250701001", invoice_date="2025-07-01",
        )
        result = record_payment({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["data"]["status"] == "Paid"
        assert result["data"]["payment_date"] == "2025-07-05"
        assert result["data"]["is_overdue"] is False

    def test_explicit_payment_date(self, db_path, customer_id, clock):
        job_id = insert_job(
            db_path, customer_id, "250701T100A", status="Invoiced", invoice_date="2025-07-01"
        )
        result = record_payment(
            {"db_path": db_path, "id": job_id, "payment_date": "2025-07-03"}, clock=clock
        )
        assert result["data"]["payment_date"] == "2025-07-03"

    def test_payment_before_invoice_rejected(self, db_path, customer_id, clock):
        job_id = insert_job(
            db_path, customer_id, "250701T100A", status="Invoiced", invoice_date="2025-07-01"
        )
        result = record_payment(
            {"db_path": db_path, "id": job_id, "payment_date": "2025-06-30"}, clock=clock
        )
        assert result["code"] == "VALIDATION_ERROR"
        assert result["error"] == "Payment date 2025-06-30 cannot be before invoice date 2025-07-01"
        assert fetch_job(db_path, job_id)["status"] == "Invoiced"

    def test_malformed_payment_date(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Invoiced", invoice_date="2025-07-01")
        result = record_payment(
            {"db_path": db_path, "id": job_id, "payment_date": "July 3"}, clock=clock
        )
        assert result["code"] == "VALIDATION_ERROR"

    def test_requires_invoiced_status(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Completed")
        result = record_payment({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["code"] == "STATE_ERROR"

    def test_missing_invoice(self, db_path, clock):
        result = record_payment({"db_path": db_path, "id": 31}, clock=clock)
        assert result["error"] == "Invoice not found: 31"


class TestInvoiceNotes:
    def test_unpaid_invoice_notes(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Invoiced", invoice_date="2025-07-01")
        result = update_invoice_notes({"db_path": db_path, "id": job_id, "notes": "net 30"}, clock=clock)
        assert result["data"]["notes"] == "net 30"

    def test_paid_invoice_is_read_only(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Paid")
        result = update_invoice_notes({"db_path": db_path, "id": job_id, "notes": "x"}, clock=clock)
        assert result["code"] == "STATE_ERROR"
        assert result["error"] == "Cannot edit paid invoice"

    def test_not_yet_invoiced(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Completed")
        result = update_invoice_notes({"db_path": db_path, "id": job_id, "notes": "x"}, clock=clock)
        assert result["error"] == "Job in 'Completed' status has not been invoiced yet"


class TestAging:
    def test_invoice_31_days_old_is_one_day_overdue(self, db_path, customer_id):
        job_id = insert_job(db_path, customer_id, "250601T100A", status="Completed")
        create_invoice({"db_path": db_path, "id": job_id}, clock=fixed_clock(datetime(2025, 6, 4, 9, 0)))

        later = fixed_clock(datetime(2025, 7, 5, 9, 0))
        result = get_invoice({"db_path": db_path, "id": job_id}, clock=later)

        assert result["data"]["invoice_date"] == "2025-06-04"
        assert result["data"]["is_overdue"] is True
        assert result["data"]["days_overdue"] == 1

    def test_aging_is_not_stored(self, db_path, customer_id):
        job_id = insert_job(db_path, customer_id, "250601T100A", status="Invoiced", invoice_date="2025-06-04")
        first = get_invoice({"db_path": db_path, "id": job_id}, clock=fixed_clock(datetime(2025, 7, 5)))
        second = get_invoice({"db_path": db_path, "id": job_id}, clock=fixed_clock(datetime(2025, 7, 10)))
        assert first["data"]["days_overdue"] == 1
        assert second["data"]["days_overdue"] == 6
        assert "is_overdue" not in fetch_job(db_path, job_id)


class TestInvoiceReads:
    def test_get_invoice_of_uninvoiced_job(self, db_path, customer_id, clock):
        job_id = insert_job(db_path, customer_id, "250701T100A", status="Completed")
        result = get_invoice({"db_path": db_path, "id": job_id}, clock=clock)
        assert result["code"] == "NOT_FOUND"

    def test_list_scopes(self, db_path, customer_id, clock):
        insert_job(db_path, customer_id, "A1", status="Invoiced", invoice_date="2025-05-01")
        insert_job(db_path, customer_id, "A2", status="Invoiced", invoice_date="2025-07-01")
        insert_job(db_path, customer_id, "A3", status="Invoiced", invoice_date="2025-04-01")
        insert_job(db_path, customer_id, "A4", status="Paid", invoice_date="2025-06-01", payment_date="2025-06-10")
        insert_job(db_path, customer_id, "A5", status="Completed")

        def numbers(scope):
            result = list_invoices({"db_path": db_path, "scope": scope}, clock=clock)
            return [job["estimate_number"] for job in result["data"]]

        assert numbers("all") == ["A2", "A4", "A1", "A3"]
        assert numbers("unpaid") == ["A2", "A1", "A3"]
        assert numbers("overdue") == ["A3", "A1"]

    def test_stats(self, db_path, customer_id, clock):
        insert_job(db_path, customer_id, "A1", status="Invoiced", invoice_date="2025-05-01", amounts=("100.00",))
        insert_job(db_path, customer_id, "A2", status="Invoiced", invoice_date="2025-07-01", amounts=("40.00",))
        insert_job(db_path, customer_id, "A3", status="Paid", invoice_date="2025-06-01",
                   payment_date="2025-06-11", amounts=("70.00",))
        insert_job(db_path, customer_id, "A4", status="Paid", invoice_date="2025-06-01",
                   payment_date="2025-06-21", amounts=("30.00",))

        assert get_invoice_stats({"db_path": db_path}, clock=clock)["data"] == {
            "unpaid_count": 2,
            "unpaid_total": "140.00",
            "overdue_count": 1,
            "overdue_total": "100.00",
            "paid_count": 2,
            "paid_total": "100.00",
            "average_days_to_pay": 15,
        }

    def test_monthly_revenue(self, db_path, customer_id, clock):
        insert_job(db_path, customer_id, "A1", status="Paid", payment_date="2025-07-02", amounts=("120.00",))
        insert_job(db_path, customer_id, "A2", status="Paid", payment_date="2025-07-04", amounts=("30.50",))
        insert_job(db_path, customer_id, "A3", status="Paid", payment_date="2025-06-30", amounts=("999.00",))

        current = get_monthly_revenue({"db_path": db_path}, clock=clock)["data"]
        assert current == {"year": 2025, "month": 7, "revenue": "150.50", "count": 2}

        june = get_monthly_revenue({"db_path": db_path, "year": 2025, "month": 6}, clock=clock)["data"]
        assert june["revenue"] == "999.00"

    def test_monthly_revenue_bad_month(self, db_path, clock):
        result = get_monthly_revenue({"db_path": db_path, "month": 13}, clock=clock)
        assert result["code"] == "VALIDATION_ERROR"
