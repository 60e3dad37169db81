"""
app/domain package marker.
"""

from app.domain.errors import CancellationError, FormatError
from app.domain.import_records import (
    CandidateRecord,
    CustomerRecord,
    FieldIssue,
    ImportOptions,
    ImportResult,
    ImportTarget,
    IssueSeverity,
    OrderRecord,
    RawRow,
    RowError,
    ValidationResult,
)

__all__ = [
    "CancellationError",
    "CandidateRecord",
    "CustomerRecord",
    "FieldIssue",
    "FormatError",
    "ImportOptions",
    "ImportResult",
    "ImportTarget",
    "IssueSeverity",
    "OrderRecord",
    "RawRow",
    "RowError",
    "ValidationResult",
]
