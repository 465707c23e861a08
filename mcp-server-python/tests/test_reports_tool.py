"""
Tests for the report tools: global search, monthly revenue, outstanding
invoices, customer history and top customers.
"""

from unittest.mock import patch

import pytest

from config import get_config
from conftest import insert_customer, insert_job
from tools.reports import (
    get_customer_history_report,
    get_monthly_revenue_report,
    get_outstanding_invoices_report,
    get_top_customers_report,
    global_search,
)


@pytest.fixture
def ledger(db_path):
    """Two customers with one job at each interesting stage."""
    ann = insert_customer(db_path, name="Ann Baker", phone="(555) 111-2222")
    bob = insert_customer(db_path, name="Bob Carter", phone="(555) 333-4444")
    insert_job(db_path, ann, "250601T100A", amounts=("80.00",), estimate_date="2025-06-01")
    insert_job(db_path, ann, "250602T100A", status="In Progress", amounts=("250.00",),
               estimate_date="2025-06-02", notes="deck stain")
    insert_job(db_path, bob, "250603T100A", status="Invoiced", amounts=("500.00",),
               estimate_date="2025-06-03", invoice_number="250610001", invoice_date="2025-06-10")
    insert_job(db_path, bob, "250604T100A", status="Paid", amounts=("900.00",),
               estimate_date="2025-06-04", invoice_number="250611001", invoice_date="2025-06-11",
               payment_date="2025-06-20")
    insert_job(db_path, ann, "250605T100A", status="Paid", amounts=("150.00",),
               estimate_date="2025-06-05", invoice_number="250612001", invoice_date="2025-06-12",
               payment_date="2025-07-02")
    return {"db_path": db_path, "ann": ann, "bob": bob}


class TestGlobalSearch:
    def _search(self, ledger, **filters):
        result = global_search({"db_path": ledger["db_path"], **filters})
        assert result["success"] is True, result
        return result["data"]

    def test_no_filters_returns_every_job(self, ledger):
        results = self._search(ledger)
        assert len(results) == 5
        assert all(r["type"] != "customer" for r in results)

    def test_term_matches_jobs_and_customers(self, ledger):
        results = self._search(ledger, term="baker")
        job_results = [r for r in results if r["type"] != "customer"]
        customer_results = [r for r in results if r["type"] == "customer"]
        assert len(job_results) == 3
        assert [r["title"] for r in customer_results] == ["Ann Baker"]
        assert customer_results[0]["status"] == "Active"
        assert customer_results[0]["date"] == "2025-07-01"

    def test_result_types_and_titles(self, ledger):
        by_number = {r["title"]: r for r in self._search(ledger)}
        assert by_number["Estimate #250601T100A"]["type"] == "estimate"
        assert by_number["Job #250602T100A"]["type"] == "job"
        assert by_number["Invoice #250610001"]["type"] == "invoice"
        assert by_number["Invoice #250610001"]["date"] == "2025-06-10"
        assert by_number["Invoice #250611001"]["amount"] == "900.00"

    def test_notes_search(self, ledger):
        results = self._search(ledger, term="STAIN")
        assert [r["title"] for r in results] == ["Job #250602T100A"]

    def test_filters_combine(self, ledger):
        results = self._search(
            ledger,
            status="Paid",
            date_from="2025-06-01",
            date_to="2025-06-30",
            amount_min=100,
            amount_max="500",
        )
        assert [r["title"] for r in results] == ["Invoice #250612001"]

    def test_status_all_means_no_filter(self, ledger):
        assert len(self._search(ledger, status="all")) == 5

    def test_customer_filter(self, ledger):
        results = self._search(ledger, customer_id=ledger["bob"])
        assert {r["customer_name"] for r in results} == {"Bob Carter"}

    def test_result_limit(self, ledger):
        with patch.object(get_config(), "search_limit", 2):
            assert len(self._search(ledger)) == 2

    def test_invalid_filters(self, ledger):
        bad_status = global_search({"db_path": ledger["db_path"], "status": "Lost"})
        bad_date = global_search({"db_path": ledger["db_path"], "date_from": "June"})
        bad_amount = global_search({"db_path": ledger["db_path"], "amount_min": -1})
        for result in (bad_status, bad_date, bad_amount):
            assert result["code"] == "VALIDATION_ERROR"


class TestRevenueReport:
    def test_year_breakdown(self, ledger, clock):
        data = get_monthly_revenue_report({"db_path": ledger["db_path"]}, clock=clock)["data"]
        assert data["year"] == 2025
        assert len(data["months"]) == 12
        june = data["months"][5]
        july = data["months"][6]
        assert june == {"month": 6, "month_name": "June", "revenue": "900.00", "count": 1}
        assert july["revenue"] == "150.00"
        assert data["total_revenue"] == "1050.00"
        assert data["total_jobs"] == 2

    def test_other_year_is_empty(self, ledger, clock):
        data = get_monthly_revenue_report({"db_path": ledger["db_path"], "year": 2024}, clock=clock)["data"]
        assert data["total_revenue"] == "0.00"


class TestOutstandingInvoices:
    def test_unpaid_only_with_aging(self, ledger, clock):
        data = get_outstanding_invoices_report({"db_path": ledger["db_path"]}, clock=clock)["data"]
        assert len(data) == 1
        invoice = data[0]
        assert invoice["invoice_number"] == "250610001"
        assert invoice["customer_name"] == "Bob Carter"
        assert invoice["customer_phone"] == "(555) 333-4444"
        assert invoice["days_since_invoice"] == 25
        assert invoice["is_overdue"] is False
        assert invoice["days_overdue"] == 0


class TestCustomerHistory:
    def test_history(self, ledger):
        data = get_customer_history_report(
            {"db_path": ledger["db_path"], "customer_id": ledger["ann"]}
        )["data"]
        assert data["customer"]["name"] == "Ann Baker"
        assert len(data["jobs"]) == 3
        assert data["jobs"][0]["line_items"][0]["amount"] == "150.00"
        assert data["stats"]["total_revenue"] == "150.00"
        assert data["stats"]["pending_estimates"] == 1

    def test_missing_customer(self, ledger):
        result = get_customer_history_report({"db_path": ledger["db_path"], "customer_id": 99})
        assert result["code"] == "NOT_FOUND"


class TestTopCustomers:
    def test_ranked_by_paid_revenue(self, ledger):
        data = get_top_customers_report({"db_path": ledger["db_path"]})["data"]
        assert [c["customer_name"] for c in data] == ["Bob Carter", "Ann Baker"]
        assert data[0]["total_revenue"] == "900.00"
        assert data[1]["total_jobs"] == 3
        assert data[1]["paid_jobs"] == 1

    def test_ties_keep_lower_id_first(self, db_path):
        first = insert_customer(db_path, name="First", phone="(555) 000-0001")
        second = insert_customer(db_path, name="Second", phone="(555) 000-0002")
        insert_job(db_path, second, "A1", status="Paid", amounts=("10.00",))
        insert_job(db_path, first, "A2", status="Paid", amounts=("10.00",))
        data = get_top_customers_report({"db_path": db_path, "limit": 1})["data"]
        assert [c["customer_id"] for c in data] == [first]
