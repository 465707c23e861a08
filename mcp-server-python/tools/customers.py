"""
Customer tools: create, update, delete, look up and search customers.

Phone numbers are stored formatted as (XXX) XXX-XXXX and are unique; a
duplicate is reported as a CONFLICT naming the existing customer.
"""

import logging
from typing import Any, Dict, List, Optional

from db.customers_writer import CustomersWriter
from db.jobs_reader import (
    ORDER_BY_CREATED,
    find_customer_by_id,
    get_connection,
    query_customers,
    query_jobs,
    to_customer_record,
    to_job_record,
)
from models.errors import (
    create_conflict_error,
    create_not_found_error,
    create_state_error,
)
from models.result import handle_tool_errors, success_result
from models.status import JobStatus
from schemas.common import EmptyRequest, RecordIdRequest, SearchRequest
from schemas.customers import CreateCustomerRequest, UpdateCustomerRequest
from schemas.records import CustomerRecord, CustomerStats, CustomerWithJobs
from utils.clock import Clock, get_current_utc_timestamp
from utils.money import parse_stored_amount, sum_amounts
from utils.validation import (
    validate_address,
    validate_customer_name,
    validate_email,
    validate_job_id,
    validate_notes,
    validate_phone_number,
    validate_search_term,
)
from utils.workflow import is_active_job, is_estimate, is_paid

logger = logging.getLogger(__name__)


def _duplicate_phone_error(existing: Dict[str, Any]):
    return create_conflict_error(
        f"A customer with this phone number already exists: {existing['name']}",
        retryable=False,
    )


def build_customer_stats(job_rows: List[Dict[str, Any]]) -> CustomerStats:
    """Summarize one customer's jobs: counts per stage, revenue and unpaid amount."""
    return CustomerStats(
        total_jobs=len(job_rows),
        completed_jobs=sum(1 for row in job_rows if is_paid(row["status"])),
        active_jobs=sum(1 for row in job_rows if is_active_job(row["status"])),
        pending_estimates=sum(1 for row in job_rows if is_estimate(row["status"])),
        total_revenue=sum_amounts(
            parse_stored_amount(row["total_amount"]) for row in job_rows if is_paid(row["status"])
        ),
        unpaid_amount=sum_amounts(
            parse_stored_amount(row["total_amount"])
            for row in job_rows
            if row["status"] == JobStatus.INVOICED.value
        ),
    )


@handle_tool_errors("create customer")
def create_customer(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """
    Create a customer.

    Args:
        args: Dictionary containing:
            - name (str): Customer name (1-255 characters)
            - phone (str): 10-digit phone number, any punctuation
            - email (str, optional)
            - address (str, optional)
            - notes (str, optional)
            - db_path (str, optional): Database path override
        clock: Optional time source

    Returns:
        Success envelope with the created customer, or a failure envelope
    """
    request = CreateCustomerRequest.model_validate(args)
    fields = {
        "name": validate_customer_name(request.name),
        "phone": validate_phone_number(request.phone),
        "email": validate_email(request.email),
        "address": validate_address(request.address),
        "notes": validate_notes(request.notes),
    }
    timestamp = get_current_utc_timestamp(clock)
    fields["created_at"] = timestamp
    fields["updated_at"] = timestamp

    with CustomersWriter(request.db_path) as writer:
        existing = writer.find_customer_by_phone(fields["phone"])
        if existing is not None:
            raise _duplicate_phone_error(existing)
        customer_id = writer.insert_customer(fields)
        writer.commit()
        customer = CustomerRecord.model_validate(writer.find_customer_by_id(customer_id))

    logger.info("Created customer %s (id=%s)", customer.name, customer_id)
    return success_result(customer)


@handle_tool_errors("update customer")
def update_customer(args: Dict[str, Any], clock: Optional[Clock] = None) -> Dict[str, Any]:
    """Update the provided fields of a customer; omitted fields are unchanged."""
    request = UpdateCustomerRequest.model_validate(args)
    customer_id = validate_job_id(request.id, label="customer ID")
    provided = request.model_fields_set

    fields: Dict[str, Any] = {}
    if "name" in provided:
        fields["name"] = validate_customer_name(request.name)
    if "phone" in provided:
        fields["phone"] = validate_phone_number(request.phone)
    if "email" in provided:
        fields["email"] = validate_email(request.email)
    if "address" in provided:
        fields["address"] = validate_address(request.address)
    if "notes" in provided:
        fields["notes"] = validate_notes(request.notes)
    fields["updated_at"] = get_current_utc_timestamp(clock)

    with CustomersWriter(request.db_path) as writer:
        writer.get_customer_or_raise(customer_id)
        if "phone" in fields:
            existing = writer.find_customer_by_phone(fields["phone"], exclude_id=customer_id)
            if existing is not None:
                raise _duplicate_phone_error(existing)
        writer.update_customer(customer_id, fields)
        writer.commit()
        customer = CustomerRecord.model_validate(writer.find_customer_by_id(customer_id))

    return success_result(customer)


@handle_tool_errors("delete customer")
def delete_customer(args: Dict[str, Any]) -> Dict[str, Any]:
    """Delete a customer that has no jobs."""
    request = RecordIdRequest.model_validate(args)
    customer_id = validate_job_id(request.id, label="customer ID")

    with CustomersWriter(request.db_path) as writer:
        writer.get_customer_or_raise(customer_id)
        if writer.count_jobs_for_customer(customer_id) > 0:
            raise create_state_error(
                "Cannot delete customer with existing jobs. Please delete all jobs first."
            )
        writer.delete_customer(customer_id)
        writer.commit()

    logger.info("Deleted customer %s", customer_id)
    return success_result({"id": customer_id, "deleted": True})


@handle_tool_errors("get customer")
def get_customer(args: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch a customer together with all of their jobs, newest first."""
    request = RecordIdRequest.model_validate(args)
    customer_id = validate_job_id(request.id, label="customer ID")

    with get_connection(request.db_path) as conn:
        row = find_customer_by_id(conn, customer_id)
        if row is None:
            raise create_not_found_error("Customer", customer_id)
        job_rows = query_jobs(conn, order_by=ORDER_BY_CREATED, customer_id=customer_id)

    customer = CustomerWithJobs.model_validate(
        {**row, "jobs": [to_job_record(job) for job in job_rows]}
    )
    return success_result(customer)


@handle_tool_errors("list customers")
def list_customers(args: Dict[str, Any]) -> Dict[str, Any]:
    request = EmptyRequest.model_validate(args)
    with get_connection(request.db_path) as conn:
        rows = query_customers(conn)
    return success_result([to_customer_record(row) for row in rows])


@handle_tool_errors("search customers")
def search_customers(args: Dict[str, Any]) -> Dict[str, Any]:
    """Search by name, phone, email or address. A blank term lists everyone."""
    request = SearchRequest.model_validate(args)
    term = validate_search_term(request.term)
    with get_connection(request.db_path) as conn:
        rows = query_customers(conn, term)
    return success_result([to_customer_record(row) for row in rows])


@handle_tool_errors("get customer stats")
def get_customer_stats(args: Dict[str, Any]) -> Dict[str, Any]:
    request = RecordIdRequest.model_validate(args)
    customer_id = validate_job_id(request.id, label="customer ID")

    with get_connection(request.db_path) as conn:
        if find_customer_by_id(conn, customer_id) is None:
            raise create_not_found_error("Customer", customer_id)
        job_rows = query_jobs(conn, order_by=ORDER_BY_CREATED, customer_id=customer_id)

    return success_result(build_customer_stats(job_rows))
