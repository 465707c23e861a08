"""
Tests for the ledger reader layer: read-only connections, status-group
queries, search and the job details loader.
"""

from datetime import date
from decimal import Decimal

import pytest

from conftest import insert_customer, insert_job
from db.jobs_reader import (
    ORDER_BY_ESTIMATE_DATE,
    ORDER_BY_INVOICE_DATE_ASC,
    find_job_by_id,
    get_connection,
    load_job_details,
    query_customers,
    query_jobs,
    query_jobs_with_customers,
    search_jobs,
)
from models.errors import ErrorCode, ToolError
from models.status import JobStatus
from utils.workflow import ACTIVE_STATUSES, ESTIMATE_STATUSES


class TestGetConnection:
    def test_missing_database(self, tmp_path):
        with pytest.raises(ToolError) as exc_info:
            with get_connection(str(tmp_path / "nope.db")):
                pass
        assert exc_info.value.code == ErrorCode.DB_NOT_FOUND

    def test_connection_is_read_only(self, db_path):
        with pytest.raises(Exception):
            with get_connection(db_path) as conn:
                conn.execute("DELETE FROM jobs")


class TestQueryJobs:
    def test_filters_by_status_group(self, db_path, customer_id):
        insert_job(db_path, customer_id, "250701T100A")
        insert_job(db_path, customer_id, "250701T200B", status="Estimate Sent")
        insert_job(db_path, customer_id, "250701T300C", status="In Progress")
        insert_job(db_path, customer_id, "250701T400D", status="Paid")

        with get_connection(db_path) as conn:
            estimates = query_jobs(conn, ESTIMATE_STATUSES)
            active = query_jobs(conn, ACTIVE_STATUSES)
            everything = query_jobs(conn)

        assert {row["estimate_number"] for row in estimates} == {"250701T100A", "250701T200B"}
        assert [row["estimate_number"] for row in active] == ["250701T300C"]
        assert len(everything) == 4

    def test_ordering_and_limit(self, db_path, customer_id):
        insert_job(db_path, customer_id, "250601T100A", estimate_date="2025-06-01")
        insert_job(db_path, customer_id, "250701T100A", estimate_date="2025-07-01")
        insert_job(db_path, customer_id, "250615T100A", estimate_date="2025-06-15")

        with get_connection(db_path) as conn:
            rows = query_jobs(conn, order_by=ORDER_BY_ESTIMATE_DATE, limit=2)

        assert [row["estimate_number"] for row in rows] == ["250701T100A", "250615T100A"]

    def test_unsupported_ordering(self, db_path):
        with get_connection(db_path) as conn:
            with pytest.raises(ValueError):
                query_jobs(conn, order_by="id; DROP TABLE jobs")

    def test_empty_status_group(self, db_path, customer_id):
        insert_job(db_path, customer_id, "250701T100A")
        with get_connection(db_path) as conn:
            assert query_jobs(conn, set()) == []

    def test_customer_filter(self, db_path, customer_id):
        other = insert_customer(db_path, name="Bob", phone="(555) 999-0000")
        insert_job(db_path, customer_id, "250701T100A")
        insert_job(db_path, other, "250701T200B")
        with get_connection(db_path) as conn:
            rows = query_jobs(conn, customer_id=other)
        assert [row["estimate_number"] for row in rows] == ["250701T200B"]


class TestSearch:
    def test_matches_number_notes_and_customer(self, db_path):
        smith = insert_customer(db_path, name="Sam Smith", phone="(555) 111-2222")
        jones = insert_customer(db_path, name="Jo Jones", phone="(555) 333-4444")
        insert_job(db_path, smith, "250701T100A")
        insert_job(db_path, jones, "250702T200A", notes="back porch")
        insert_job(db_path, jones, "250703T300A", status="Invoiced", invoice_number="250703001")

        with get_connection(db_path) as conn:
            assert len(search_jobs(conn, "smith")) == 1
            assert len(search_jobs(conn, "PORCH")) == 1
            assert len(search_jobs(conn, "250703001")) == 1
            assert len(search_jobs(conn, "jones", ESTIMATE_STATUSES)) == 1

    def test_jobs_with_customers(self, db_path, customer_id):
        insert_job(db_path, customer_id, "250701T100A", status="Invoiced", invoice_date="2025-06-01")
        with get_connection(db_path) as conn:
            rows = query_jobs_with_customers(
                conn, {JobStatus.INVOICED}, order_by=ORDER_BY_INVOICE_DATE_ASC
            )
        assert rows[0]["customer_name"] == "Jane Homeowner"
        assert rows[0]["customer_phone"] == "(555) 123-4567"

    def test_query_customers(self, db_path):
        first = insert_customer(db_path, name="Ann", phone="(555) 111-2222")
        second = insert_customer(db_path, name="Ben", phone="(555) 333-4444", email="ben@x.io")
        with get_connection(db_path) as conn:
            assert [c["id"] for c in query_customers(conn)] == [second, first]
            assert [c["id"] for c in query_customers(conn, "x.io")] == [second]


class TestLoadJobDetails:
    def test_details_include_customer_items_and_aging(self, db_path, customer_id):
        job_id = insert_job(
            db_path,
            customer_id,
            "250601T100A",
            status="Invoiced",
            amounts=("300.25", "50.25"),
            invoice_number="250604001",
            invoice_date="2025-06-04",
        )
        with get_connection(db_path) as conn:
            details = load_job_details(conn, find_job_by_id(conn, job_id), date(2025, 7, 5))

        assert details.status is JobStatus.INVOICED
        assert details.total_amount == Decimal("350.50")
        assert details.customer.name == "Jane Homeowner"
        assert [item.item_number for item in details.line_items] == [1, 2]
        assert details.is_overdue is True
        assert details.days_overdue == 1

        dumped = details.model_dump(mode="json")
        assert dumped["total_amount"] == "350.50"
        assert dumped["invoice_date"] == "2025-06-04"

    def test_threshold_is_configurable(self, db_path, customer_id):
        job_id = insert_job(
            db_path, customer_id, "250601T100A", status="Invoiced", invoice_date="2025-06-04"
        )
        with get_connection(db_path) as conn:
            details = load_job_details(
                conn, find_job_by_id(conn, job_id), date(2025, 7, 5), overdue_after_days=60
            )
        assert details.is_overdue is False
