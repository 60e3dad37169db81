"""
app/schemas/import_pipeline.py

Response schemas for the import endpoints.

Field names are serialized in camelCase and every payload is wrapped as
``{"data": ...}`` to match what the CRM client reads.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.import_records import (
    CandidateRecord,
    FieldIssue,
    ImportResult,
    RowError,
    ValidationResult,
)

PayloadT = TypeVar("PayloadT")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldIssueResponse(CamelModel):
    """
    API response model for one field-level issue.
    """

    row: int = Field(..., ge=1)
    field: str
    message: str
    severity: str
    value: str | None = None

    @classmethod
    def from_domain(cls, issue: FieldIssue) -> "FieldIssueResponse":
        return cls(
            row=issue.row,
            field=issue.field,
            message=issue.message,
            severity=issue.severity.value,
            value=issue.value,
        )


class PreviewRowResponse(CamelModel):
    """
    One previewed row: its coerced values and whether it can be imported.
    """

    row: int = Field(..., ge=1)
    is_valid: bool
    data: dict[str, Any] = Field(default_factory=dict)
    errors: list[FieldIssueResponse] = Field(default_factory=list)
    warnings: list[FieldIssueResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, candidate: CandidateRecord) -> "PreviewRowResponse":
        return cls(
            row=candidate.row_number,
            is_valid=candidate.is_valid,
            data={name: _json_value(value) for name, value in candidate.data.items()},
            errors=[FieldIssueResponse.from_domain(issue) for issue in candidate.errors],
            warnings=[FieldIssueResponse.from_domain(issue) for issue in candidate.warnings],
        )


class ValidationResultResponse(CamelModel):
    is_valid: bool
    import_target: str
    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    warning_count: int = Field(..., ge=0)
    issues_truncated: bool = False
    errors: list[FieldIssueResponse] = Field(default_factory=list)
    warnings: list[FieldIssueResponse] = Field(default_factory=list)
    preview: list[PreviewRowResponse] = Field(default_factory=list)
    detected_headers: list[str] = Field(default_factory=list)
    field_mapping: dict[str, str] = Field(default_factory=dict)
    unmapped_headers: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: ValidationResult) -> "ValidationResultResponse":
        return cls(
            is_valid=result.is_valid,
            import_target=result.import_target.value,
            total_rows=result.total_rows,
            valid_rows=result.valid_rows,
            error_count=result.error_count,
            warning_count=result.warning_count,
            issues_truncated=result.issues_truncated,
            errors=[FieldIssueResponse.from_domain(issue) for issue in result.errors],
            warnings=[FieldIssueResponse.from_domain(issue) for issue in result.warnings],
            preview=[PreviewRowResponse.from_domain(candidate) for candidate in result.preview],
            detected_headers=list(result.detected_headers),
            field_mapping=dict(result.field_mapping),
            unmapped_headers=list(result.unmapped_headers),
        )


class RowErrorResponse(CamelModel):
    row: int = Field(..., ge=1)
    reason: str

    @classmethod
    def from_domain(cls, error: RowError) -> "RowErrorResponse":
        return cls(row=error.row, reason=error.reason)


class ImportResultResponse(CamelModel):
    """
    API response model for a finished (or cancelled) import run.
    """

    success: bool
    total_processed: int = Field(..., ge=0)
    successful_inserts: int = Field(..., ge=0)
    failed_inserts: int = Field(..., ge=0)
    duplicates_skipped: int = Field(..., ge=0)
    invalid_rows: int = Field(0, ge=0)
    batches: int = Field(0, ge=0)
    cancelled: bool = False
    errors: list[RowErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: ImportResult) -> "ImportResultResponse":
        return cls(
            success=result.success,
            total_processed=result.total_processed,
            successful_inserts=result.successful_inserts,
            failed_inserts=result.failed_inserts,
            duplicates_skipped=result.duplicates_skipped,
            invalid_rows=result.invalid_rows,
            batches=result.batches,
            cancelled=result.cancelled,
            errors=[RowErrorResponse.from_domain(error) for error in result.errors],
        )


class DataEnvelope(BaseModel, Generic[PayloadT]):
    data: PayloadT


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, date):
        return value.isoformat()
    return value
