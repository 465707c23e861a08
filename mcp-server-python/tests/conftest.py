"""
Shared fixtures for ledger tests.

Each test gets a fresh SQLite file with the full schema, plus helpers that
seed customers and jobs directly so read-side tests don't depend on the
mutation tools.
"""

import random
import sqlite3
from datetime import datetime
from decimal import Decimal

import pytest

from db.schema import initialize_database
from utils.clock import fixed_clock

# 2025-07-05 10:30 UTC is the "now" of most tests
NOW = datetime(2025, 7, 5, 10, 30, 0)


@pytest.fixture
def db_path(tmp_path):
    """Path of an initialized, empty ledger database."""
    path = tmp_path / "ledger.db"
    initialize_database(str(path))
    return str(path)


@pytest.fixture
def clock():
    return fixed_clock(NOW)


@pytest.fixture
def rng():
    return random.Random(42)


def insert_customer(db_path, name="Jane Homeowner", phone="(555) 123-4567", **extra):
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute(
            """
            INSERT INTO customers (name, phone, email, address, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                phone,
                extra.get("email"),
                extra.get("address"),
                extra.get("notes"),
                extra.get("created_at", "2025-07-01T00:00:00.000Z"),
                extra.get("updated_at", "2025-07-01T00:00:00.000Z"),
            ),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def insert_job(db_path, customer_id, estimate_number, status="Estimate Created", amounts=("100.00",), **columns):
    """Insert a job row and its line items; returns the job id."""
    total = sum((Decimal(a) for a in amounts), Decimal("0.00"))
    values = {
        "customer_id": customer_id,
        "estimate_number": estimate_number,
        "status": status,
        "estimate_date": "2025-07-01",
        "total_amount": str(total),
        "created_at": "2025-07-01T00:00:00.000Z",
        "updated_at": "2025-07-01T00:00:00.000Z",
    }
    values.update(columns)

    conn = sqlite3.connect(db_path)
    try:
        names = list(values)
        cursor = conn.execute(
            f"INSERT INTO jobs ({', '.join(names)}) VALUES ({','.join('?' * len(names))})",
            [values[n] for n in names],
        )
        job_id = cursor.lastrowid
        for number, amount in enumerate(amounts, start=1):
            conn.execute(
                """
                INSERT INTO line_items (job_id, item_number, action, amount, description)
                VALUES (?, ?, ?, ?, ?)
                """,
                (job_id, number, f"Task {number}", amount, f"Description {number}"),
            )
        conn.commit()
        return job_id
    finally:
        conn.close()


def fetch_job(db_path, job_id):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def fetch_line_items(db_path, job_id):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        rows = conn.execute(
            "SELECT * FROM line_items WHERE job_id = ? ORDER BY item_number", (job_id,)
        ).fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


@pytest.fixture
def customer_id(db_path):
    return insert_customer(db_path)
