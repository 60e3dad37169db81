"""
app/schemas package marker.
"""

from app.schemas.import_pipeline import (
    DataEnvelope,
    FieldIssueResponse,
    ImportResultResponse,
    PreviewRowResponse,
    RowErrorResponse,
    ValidationResultResponse,
)

__all__ = [
    "DataEnvelope",
    "FieldIssueResponse",
    "ImportResultResponse",
    "PreviewRowResponse",
    "RowErrorResponse",
    "ValidationResultResponse",
]
