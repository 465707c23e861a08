"""Pydantic schemas for job tools."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

from schemas.common import DbPathMixin, RecordIdRequest, StrictIgnoreRequest, StrictResponse


class UpdateJobStatusRequest(RecordIdRequest):
    """Request schema for update_job_status."""

    status: Any = None


class ListJobsRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_jobs.

    ``scope`` selects a status group; ``status`` narrows to one status and
    takes precedence when both are given.
    """

    scope: Literal["all", "active", "completed"] = "all"
    status: Optional[str] = None


class JobStats(StrictResponse):
    """Response schema for get_job_stats."""

    active_count: int
    in_progress_count: int
    completed_count: int
    active_value: Decimal
