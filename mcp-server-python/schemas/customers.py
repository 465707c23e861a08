"""Pydantic schemas for customer tools."""

from __future__ import annotations

from typing import Optional

from schemas.common import DbPathMixin, RecordIdRequest, StrictIgnoreRequest


class CreateCustomerRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for create_customer."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class UpdateCustomerRequest(RecordIdRequest):
    """Request schema for update_customer. Only provided fields change."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
