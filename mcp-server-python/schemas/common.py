"""Shared schema primitives for ledger tool request/response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def validate_optional_non_empty_str(value: Optional[str], field_name: str) -> Optional[str]:
    """Validate optional string fields that cannot be empty/whitespace."""
    if value is None:
        return None
    if not value.strip():
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return value


class StrictIgnoreRequest(BaseModel):
    """Request base with strict typing and ignored unknown fields."""

    model_config = ConfigDict(extra="ignore", strict=True)


class StrictForbidRequest(BaseModel):
    """Request base with strict typing and rejected unknown fields."""

    model_config = ConfigDict(extra="forbid", strict=True)


class StrictResponse(BaseModel):
    """Response/result base with strict typing and forbidden unknown fields."""

    model_config = ConfigDict(extra="forbid")


class RowRecord(StrictResponse):
    """Record built from a database row: extra columns are ignored and
    empty strings are normalised to None."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def empty_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data


class DbPathMixin(BaseModel):
    """Reusable db_path field validation."""

    db_path: Optional[str] = None

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "db_path")


class EmptyRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for tools that take no arguments besides db_path."""


class RecordIdRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for tools addressing a single job or customer by id."""

    id: Any


class NotesRequest(RecordIdRequest):
    """Request schema for note edits."""

    notes: Optional[str] = None


class LimitRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for tools returning the N most relevant rows."""

    limit: Any = None


class SearchRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for free-text search tools."""

    term: Optional[str] = None
