"""Pydantic schemas for estimate tools."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from schemas.common import DbPathMixin, RecordIdRequest, StrictIgnoreRequest, StrictResponse


class CreateEstimateRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for create_estimate.

    ``line_items`` is validated item by item in ``utils.validation`` so
    callers get messages naming the offending line.
    """

    customer_id: Any = None
    line_items: Any = None
    notes: Optional[str] = None


class UpdateEstimateRequest(RecordIdRequest):
    """Request schema for update_estimate. Omitted fields are left unchanged."""

    line_items: Any = None
    notes: Optional[str] = None


class EstimateStats(StrictResponse):
    """Response schema for get_estimate_stats."""

    pending_count: int
    pending_value: Decimal
    monthly_count: int
    monthly_value: Decimal
    conversion_rate: int
