"""
Database writer layer for ledger mutations.

Provides write access to the ledger database with transaction management.
Every writer opens its transaction with BEGIN IMMEDIATE so the write lock is
held before identifiers are counted; the insert that follows cannot race a
concurrent writer minting the same number.
"""

import sqlite3
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.errors import (
    create_conflict_error,
    create_db_error,
    create_db_not_found_error,
    create_not_found_error,
)
from utils.identifiers import ESTIMATE_NUMBER_COLUMN, INVOICE_NUMBER_COLUMN
from utils.money import format_amount, sum_amounts
from utils.path_resolution import resolve_db_path

# Columns that update_job/insert_job accept
JOB_COLUMNS = (
    "customer_id",
    "estimate_number",
    "invoice_number",
    "estimate_date",
    "approval_date",
    "start_date",
    "completion_date",
    "invoice_date",
    "payment_date",
    "status",
    "total_amount",
    "notes",
    "created_at",
    "updated_at",
)

IDENTIFIER_COLUMNS = (ESTIMATE_NUMBER_COLUMN, INVOICE_NUMBER_COLUMN)


def _check_columns(fields: Dict[str, Any], allowed) -> None:
    unknown = [name for name in fields if name not in allowed]
    if unknown:
        raise ValueError(f"Unknown column(s): {', '.join(sorted(unknown))}")


def _storable(value: Any) -> Any:
    """Convert Decimal and date values to their TEXT storage form."""
    if isinstance(value, Decimal):
        return format_amount(value)
    if hasattr(value, "isoformat") and not isinstance(value, str):
        return value.isoformat()
    return value


class SqliteWriter:
    """
    Context manager for write operations on the ledger database.

    Provides transaction management with automatic rollback on exceptions
    and guaranteed connection cleanup.

    Usage:
        with JobsWriter(db_path) as writer:
            job = writer.find_job_by_id(1)
            writer.update_job(1, {"status": "Estimate Sent"})
            writer.commit()
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize writer with database path.

        Args:
            db_path: Optional database path override
        """
        self.db_path = db_path
        self.resolved_path: Optional[Path] = None
        self.conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    def __enter__(self):
        """
        Open connection and begin an immediate transaction.

        Returns:
            self: The writer instance

        Raises:
            ToolError: If database file doesn't exist or connection fails
        """
        self.resolved_path = resolve_db_path(self.db_path)

        if not self.resolved_path.exists() or not self.resolved_path.is_file():
            raise create_db_not_found_error(str(self.resolved_path))

        try:
            self.conn = sqlite3.connect(str(self.resolved_path))
            self.conn.row_factory = sqlite3.Row
            # Must be set outside a transaction to take effect
            self.conn.execute("PRAGMA foreign_keys = ON")

            self.conn.execute("BEGIN IMMEDIATE")
            self._in_transaction = True

            return self

        except sqlite3.OperationalError as e:
            self._close()
            error_msg = str(e)
            if "unable to open database" in error_msg.lower():
                raise create_db_not_found_error(str(self.resolved_path)) from e
            # "database is locked" lands here and is worth retrying
            raise create_db_error(error_msg, retryable=True, original_error=e) from e

        except sqlite3.Error as e:
            self._close()
            raise create_db_error(str(e), retryable=False, original_error=e) from e

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Rollback on exception or missing commit, close connection always.

        Returns:
            False to propagate exceptions
        """
        try:
            if self._in_transaction:
                self.rollback()
        finally:
            self._close()

        return False

    def _close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise create_db_error("Connection not established", retryable=False)
        return self.conn

    def _execute(self, query: str, params=()) -> sqlite3.Cursor:
        conn = self._require_conn()
        try:
            return conn.execute(query, tuple(params))
        except sqlite3.IntegrityError:
            raise
        except sqlite3.OperationalError as e:
            raise create_db_error(str(e), retryable=True, original_error=e) from e
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

    def _fetch_one(self, query: str, params=()) -> Optional[Dict[str, Any]]:
        row = self._execute(query, params).fetchone()
        return dict(row) if row is not None else None

    def _fetch_all(self, query: str, params=()) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._execute(query, params).fetchall()]

    def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            ToolError: If commit fails
        """
        conn = self._require_conn()
        try:
            conn.commit()
            self._in_transaction = False
        except sqlite3.Error as e:
            raise create_db_error(f"Commit failed: {str(e)}", retryable=True, original_error=e) from e

    def rollback(self) -> None:
        """Rollback the current transaction; failures are ignored."""
        if self.conn is None:
            return
        try:
            self.conn.rollback()
        except sqlite3.Error:
            # Connection is closed right after; nothing left to undo
            pass
        finally:
            self._in_transaction = False


class JobsWriter(SqliteWriter):
    """Writer for jobs and their line items."""

    def find_job_by_id(self, job_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM jobs WHERE id = ?", (job_id,))

    def get_job_or_raise(self, job_id: int, entity: str = "Job") -> Dict[str, Any]:
        """
        Load a job row or raise NotFoundError naming ``entity``.

        Raises:
            NotFoundError: If no job has this id
        """
        job = self.find_job_by_id(job_id)
        if job is None:
            raise create_not_found_error(entity, job_id)
        return job

    def customer_exists(self, customer_id: int) -> bool:
        return self._fetch_one("SELECT id FROM customers WHERE id = ?", (customer_id,)) is not None

    def find_line_items_by_job_id(self, job_id: int) -> List[Dict[str, Any]]:
        return self._fetch_all(
            "SELECT * FROM line_items WHERE job_id = ? ORDER BY item_number ASC",
            (job_id,),
        )

    def count_identifiers_with_prefix(self, column: str, prefix: str) -> int:
        """
        Count identifiers in ``column`` starting with ``prefix``.

        Args:
            column: estimate_number or invoice_number
            prefix: Date prefix, digits only

        Returns:
            Number of existing identifiers sharing the prefix
        """
        if column not in IDENTIFIER_COLUMNS:
            raise ValueError(f"Not an identifier column: {column}")
        row = self._fetch_one(
            f"SELECT COUNT(*) AS n FROM jobs WHERE {column} LIKE ?",
            (f"{prefix}%",),
        )
        return row["n"] if row else 0

    def insert_job(self, fields: Dict[str, Any]) -> int:
        """
        Insert a job row.

        Args:
            fields: Column values; Decimal and date values are stored as TEXT

        Returns:
            The new job id

        Raises:
            ConflictError: If the estimate number is already taken
            ToolError: On any other database failure
        """
        _check_columns(fields, JOB_COLUMNS)
        columns = list(fields)
        placeholders = ",".join("?" * len(columns))
        query = f"INSERT INTO jobs ({', '.join(columns)}) VALUES ({placeholders})"
        try:
            cursor = self._execute(query, [_storable(fields[c]) for c in columns])
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        return cursor.lastrowid

    def update_job(self, job_id: int, fields: Dict[str, Any]) -> None:
        """
        Update the given columns of one job.

        Raises:
            NotFoundError: If the job does not exist
            ConflictError: If the invoice number is already taken
        """
        _check_columns(fields, JOB_COLUMNS)
        if not fields:
            return
        columns = list(fields)
        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = [_storable(fields[c]) for c in columns] + [job_id]
        try:
            cursor = self._execute(f"UPDATE jobs SET {assignments} WHERE id = ?", params)
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        if cursor.rowcount == 0:
            raise create_not_found_error("Job", job_id)

    def delete_job(self, job_id: int) -> None:
        """Delete a job and its line items."""
        self._execute("DELETE FROM line_items WHERE job_id = ?", (job_id,))
        cursor = self._execute("DELETE FROM jobs WHERE id = ?", (job_id,))
        if cursor.rowcount == 0:
            raise create_not_found_error("Job", job_id)

    def replace_line_items(self, job_id: int, items: List[Dict[str, Any]]) -> Decimal:
        """
        Replace the full line item set of a job, numbering items 1..N.

        Args:
            job_id: Owning job
            items: Validated items with action, amount and description

        Returns:
            Sum of the new amounts
        """
        self._execute("DELETE FROM line_items WHERE job_id = ?", (job_id,))
        for number, item in enumerate(items, start=1):
            self._execute(
                """
                INSERT INTO line_items (job_id, item_number, action, amount, description)
                VALUES (?, ?, ?, ?, ?)
                """,
                (job_id, number, item["action"], format_amount(item["amount"]), item["description"]),
            )
        return sum_amounts(item["amount"] for item in items)

    @staticmethod
    def _integrity_error(error: sqlite3.IntegrityError):
        message = str(error)
        if "estimate_number" in message:
            return create_conflict_error("Estimate number already exists", original_error=error)
        if "invoice_number" in message:
            return create_conflict_error("Invoice number already exists", original_error=error)
        return create_db_error(message, retryable=False, original_error=error)
