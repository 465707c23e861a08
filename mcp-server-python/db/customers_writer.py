"""
Database writer for customer records.

Shares transaction handling with JobsWriter; the phone column carries a
UNIQUE constraint which is reported as a ConflictError.
"""

import sqlite3
from typing import Any, Dict, Optional

from db.jobs_writer import SqliteWriter, _check_columns
from models.errors import create_conflict_error, create_db_error, create_not_found_error

CUSTOMER_COLUMNS = ("name", "phone", "email", "address", "notes", "created_at", "updated_at")


class CustomersWriter(SqliteWriter):
    """Writer for the customers table."""

    def find_customer_by_id(self, customer_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM customers WHERE id = ?", (customer_id,))

    def get_customer_or_raise(self, customer_id: int) -> Dict[str, Any]:
        customer = self.find_customer_by_id(customer_id)
        if customer is None:
            raise create_not_found_error("Customer", customer_id)
        return customer

    def find_customer_by_phone(
        self, phone: str, exclude_id: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Find the customer holding ``phone``, optionally ignoring one id.

        Args:
            phone: Formatted phone number
            exclude_id: Customer to skip (the one being updated)
        """
        if exclude_id is None:
            return self._fetch_one("SELECT * FROM customers WHERE phone = ?", (phone,))
        return self._fetch_one(
            "SELECT * FROM customers WHERE phone = ? AND id != ?", (phone, exclude_id)
        )

    def count_jobs_for_customer(self, customer_id: int) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) AS n FROM jobs WHERE customer_id = ?", (customer_id,)
        )
        return row["n"] if row else 0

    def insert_customer(self, fields: Dict[str, Any]) -> int:
        """
        Insert a customer row.

        Raises:
            ConflictError: If the phone number is already taken
        """
        _check_columns(fields, CUSTOMER_COLUMNS)
        columns = list(fields)
        placeholders = ",".join("?" * len(columns))
        try:
            cursor = self._execute(
                f"INSERT INTO customers ({', '.join(columns)}) VALUES ({placeholders})",
                [fields[c] for c in columns],
            )
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        return cursor.lastrowid

    def update_customer(self, customer_id: int, fields: Dict[str, Any]) -> None:
        """
        Update the given columns of one customer.

        Raises:
            NotFoundError: If the customer does not exist
            ConflictError: If the phone number is already taken
        """
        _check_columns(fields, CUSTOMER_COLUMNS)
        if not fields:
            return
        columns = list(fields)
        assignments = ", ".join(f"{c} = ?" for c in columns)
        try:
            cursor = self._execute(
                f"UPDATE customers SET {assignments} WHERE id = ?",
                [fields[c] for c in columns] + [customer_id],
            )
        except sqlite3.IntegrityError as e:
            raise self._integrity_error(e) from e
        if cursor.rowcount == 0:
            raise create_not_found_error("Customer", customer_id)

    def delete_customer(self, customer_id: int) -> None:
        cursor = self._execute("DELETE FROM customers WHERE id = ?", (customer_id,))
        if cursor.rowcount == 0:
            raise create_not_found_error("Customer", customer_id)

    @staticmethod
    def _integrity_error(error: sqlite3.IntegrityError):
        message = str(error)
        if "phone" in message:
            return create_conflict_error(
                "A customer with this phone number already exists",
                retryable=False,
                original_error=error,
            )
        return create_db_error(message, retryable=False, original_error=error)
