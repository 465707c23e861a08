"""
Database reader layer for ledger queries.

Provides read-only access to the ledger database with connection management
and deterministic query execution. Query helpers take a connection so the
same code serves read-only connections and a writer's connection right
after a mutation.
"""

import sqlite3
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from models.errors import create_db_error, create_db_not_found_error
from schemas.records import (
    CustomerRecord,
    CustomerSummary,
    JobDetails,
    JobRecord,
    LineItemRecord,
)
from utils.aging import DEFAULT_OVERDUE_AFTER_DAYS, calculate_overdue_status
from utils.path_resolution import resolve_db_path
from utils.workflow import ordered_values

# Whitelisted orderings for job listings
ORDER_BY_ESTIMATE_DATE = "estimate_date DESC, id DESC"
ORDER_BY_UPDATED = "updated_at DESC, id DESC"
ORDER_BY_INVOICE_DATE = "invoice_date DESC, id DESC"
ORDER_BY_INVOICE_DATE_ASC = "invoice_date ASC, id ASC"
ORDER_BY_PAYMENT_DATE = "payment_date DESC, id DESC"
ORDER_BY_CREATED = "created_at DESC, id DESC"

_ORDERINGS = {
    ORDER_BY_ESTIMATE_DATE,
    ORDER_BY_UPDATED,
    ORDER_BY_INVOICE_DATE,
    ORDER_BY_INVOICE_DATE_ASC,
    ORDER_BY_PAYMENT_DATE,
    ORDER_BY_CREATED,
}

CUSTOMER_SUMMARY_COLUMNS = "id, name, phone, email, address"


@contextmanager
def get_connection(db_path: Optional[str] = None):
    """
    Context manager for read-only SQLite connections.

    Ensures connections are always properly closed, even on errors.

    Args:
        db_path: Optional database path override

    Yields:
        sqlite3.Connection: Database connection

    Raises:
        ToolError: If database file doesn't exist or connection fails
    """
    resolved_path = resolve_db_path(db_path)

    if not resolved_path.exists() or not resolved_path.is_file():
        raise create_db_not_found_error(str(resolved_path))

    conn = None
    try:
        # URI mode allows read-only flag
        uri = f"file:{resolved_path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row

        yield conn

    except sqlite3.OperationalError as e:
        error_msg = str(e)
        if "unable to open database" in error_msg.lower():
            raise create_db_not_found_error(str(resolved_path)) from e
        raise create_db_error(error_msg, retryable=True, original_error=e) from e

    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    finally:
        if conn is not None:
            conn.close()


def _fetch_all(conn: sqlite3.Connection, query: str, params: Iterable[Any] = ()) -> List[Dict[str, Any]]:
    try:
        cursor = conn.execute(query, tuple(params))
        return [dict(row) for row in cursor.fetchall()]
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e


def _fetch_one(conn: sqlite3.Connection, query: str, params: Iterable[Any] = ()) -> Optional[Dict[str, Any]]:
    rows = _fetch_all(conn, query, params)
    return rows[0] if rows else None


def _placeholders(values: List[Any]) -> str:
    return ",".join("?" * len(values))


def find_job_by_id(conn: sqlite3.Connection, job_id: int) -> Optional[Dict[str, Any]]:
    return _fetch_one(conn, "SELECT * FROM jobs WHERE id = ?", (job_id,))


def find_line_items_by_job_id(conn: sqlite3.Connection, job_id: int) -> List[Dict[str, Any]]:
    """Line items of a job ordered by item_number."""
    return _fetch_all(
        conn,
        "SELECT * FROM line_items WHERE job_id = ? ORDER BY item_number ASC",
        (job_id,),
    )


def find_customer_by_id(conn: sqlite3.Connection, customer_id: int) -> Optional[Dict[str, Any]]:
    return _fetch_one(conn, "SELECT * FROM customers WHERE id = ?", (customer_id,))


def query_jobs(
    conn: sqlite3.Connection,
    statuses: Optional[Iterable] = None,
    order_by: str = ORDER_BY_UPDATED,
    limit: Optional[int] = None,
    customer_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Query job rows, optionally restricted to a status group and customer.

    Args:
        conn: Database connection
        statuses: Status group to include (None means every status)
        order_by: One of the whitelisted ORDER_BY_* constants
        limit: Optional maximum number of rows
        customer_id: Optional customer filter

    Returns:
        List of job rows as dictionaries
    """
    if order_by not in _ORDERINGS:
        raise ValueError(f"Unsupported ordering: {order_by}")

    clauses = []
    params: List[Any] = []
    if statuses is not None:
        values = ordered_values(set(statuses))
        if not values:
            return []
        clauses.append(f"status IN ({_placeholders(values)})")
        params.extend(values)
    if customer_id is not None:
        clauses.append("customer_id = ?")
        params.append(customer_id)

    query = "SELECT * FROM jobs"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += f" ORDER BY {order_by}"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    return _fetch_all(conn, query, params)


def search_jobs(
    conn: sqlite3.Connection,
    term: str,
    statuses: Optional[Iterable] = None,
    order_by: str = ORDER_BY_UPDATED,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Case-insensitive search on estimate number, invoice number, notes and
    customer name.
    """
    if order_by not in _ORDERINGS:
        raise ValueError(f"Unsupported ordering: {order_by}")

    pattern = f"%{term}%"
    query = """
        SELECT jobs.* FROM jobs
        JOIN customers ON customers.id = jobs.customer_id
        WHERE (
            jobs.estimate_number LIKE ?
            OR jobs.invoice_number LIKE ?
            OR jobs.notes LIKE ?
            OR customers.name LIKE ?
        )
    """
    params: List[Any] = [pattern, pattern, pattern, pattern]
    if statuses is not None:
        values = ordered_values(set(statuses))
        if not values:
            return []
        query += f" AND jobs.status IN ({_placeholders(values)})"
        params.extend(values)
    query += " ORDER BY " + ", ".join(f"jobs.{part.strip()}" for part in order_by.split(","))
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    return _fetch_all(conn, query, params)


def query_jobs_with_customers(
    conn: sqlite3.Connection,
    statuses: Optional[Iterable] = None,
    order_by: str = ORDER_BY_UPDATED,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Job rows flattened with ``customer_name`` and ``customer_phone`` for reports."""
    if order_by not in _ORDERINGS:
        raise ValueError(f"Unsupported ordering: {order_by}")

    query = """
        SELECT jobs.*, customers.name AS customer_name, customers.phone AS customer_phone
        FROM jobs
        JOIN customers ON customers.id = jobs.customer_id
    """
    params: List[Any] = []
    if statuses is not None:
        values = ordered_values(set(statuses))
        if not values:
            return []
        query += f" WHERE jobs.status IN ({_placeholders(values)})"
        params.extend(values)
    query += " ORDER BY " + ", ".join(f"jobs.{part.strip()}" for part in order_by.split(","))
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    return _fetch_all(conn, query, params)


def query_customers(
    conn: sqlite3.Connection, term: str = "", limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """Customers newest first, optionally filtered on name, phone, email or address."""
    query = "SELECT * FROM customers"
    params: List[Any] = []
    if term:
        pattern = f"%{term}%"
        query += " WHERE name LIKE ? OR phone LIKE ? OR email LIKE ? OR address LIKE ?"
        params.extend([pattern, pattern, pattern, pattern])
    query += " ORDER BY id DESC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    return _fetch_all(conn, query, params)


def load_job_details(
    conn: sqlite3.Connection,
    job_row: Dict[str, Any],
    today: date,
    overdue_after_days: int = DEFAULT_OVERDUE_AFTER_DAYS,
) -> JobDetails:
    """
    Populate a job row with its customer, line items and aging annotation.

    Aging is computed here, at read time, from ``today``; it is never stored.
    """
    customer_row = _fetch_one(
        conn,
        f"SELECT {CUSTOMER_SUMMARY_COLUMNS} FROM customers WHERE id = ?",
        (job_row["customer_id"],),
    )
    line_item_rows = find_line_items_by_job_id(conn, job_row["id"])
    aging = calculate_overdue_status(
        job_row["status"],
        job_row.get("invoice_date"),
        job_row.get("payment_date"),
        today,
        overdue_after_days,
    )

    return JobDetails.model_validate(
        {
            **job_row,
            "customer": CustomerSummary.model_validate(customer_row) if customer_row else None,
            "line_items": [LineItemRecord.model_validate(row) for row in line_item_rows],
            "is_overdue": aging.is_overdue,
            "days_overdue": aging.days_overdue,
        }
    )


def load_jobs_details(
    conn: sqlite3.Connection,
    job_rows: List[Dict[str, Any]],
    today: date,
    overdue_after_days: int = DEFAULT_OVERDUE_AFTER_DAYS,
) -> List[JobDetails]:
    return [load_job_details(conn, row, today, overdue_after_days) for row in job_rows]


def to_job_record(row: Dict[str, Any]) -> JobRecord:
    return JobRecord.model_validate(row)


def to_customer_record(row: Dict[str, Any]) -> CustomerRecord:
    return CustomerRecord.model_validate(row)
