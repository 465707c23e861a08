"""
Schema bootstrap for the ledger database.

Creates the customers, jobs and line_items tables with the uniqueness
constraints the identifier generator relies on. Safe to run repeatedly.
"""

import sqlite3
from pathlib import Path
from typing import Optional

from models.errors import create_db_error
from utils.path_resolution import resolve_db_path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS customers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    phone TEXT NOT NULL UNIQUE,
    email TEXT,
    address TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    estimate_number TEXT NOT NULL UNIQUE,
    invoice_number TEXT,
    estimate_date TEXT NOT NULL,
    approval_date TEXT,
    start_date TEXT,
    completion_date TEXT,
    invoice_date TEXT,
    payment_date TEXT,
    status TEXT NOT NULL DEFAULT 'Estimate Created',
    total_amount TEXT NOT NULL DEFAULT '0.00',
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_jobs_invoice_number
    ON jobs(invoice_number) WHERE invoice_number IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_jobs_customer_id ON jobs(customer_id);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);

CREATE TABLE IF NOT EXISTS line_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id INTEGER NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    item_number INTEGER NOT NULL,
    action TEXT NOT NULL,
    amount TEXT NOT NULL,
    description TEXT
);

CREATE INDEX IF NOT EXISTS idx_line_items_job_id ON line_items(job_id);
"""


def ensure_parent_dirs(db_path: Path) -> None:
    """
    Ensure parent directories exist for the database file.

    Raises:
        ToolError: If directory creation fails
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise create_db_error(
            f"Failed to create parent directories: {str(e)}", retryable=False, original_error=e
        ) from e


def bootstrap_schema(conn: sqlite3.Connection) -> None:
    """
    Create the ledger tables and indexes if they don't exist.

    Raises:
        ToolError: If schema creation fails
    """
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    except sqlite3.Error as e:
        raise create_db_error(
            f"Failed to bootstrap schema: {str(e)}", retryable=False, original_error=e
        ) from e


def initialize_database(db_path: Optional[str] = None) -> Path:
    """
    Create the database file (and parent directories) with the ledger schema.

    Args:
        db_path: Optional database path override

    Returns:
        Resolved path of the initialized database
    """
    resolved_path = resolve_db_path(db_path)
    ensure_parent_dirs(resolved_path)

    conn = None
    try:
        conn = sqlite3.connect(str(resolved_path))
        bootstrap_schema(conn)
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e
    finally:
        if conn is not None:
            conn.close()

    return resolved_path
