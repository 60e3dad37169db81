"""
app/domain/import_records.py

Value objects shared by the validate and execute import flows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Union


class ImportTarget(str, Enum):
    """
    Closed set of record types an uploaded file can be imported as.
    """

    CUSTOMER = "customer"
    ORDER = "order"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class RawRow:
    """
    One data row as read from the file, before any typing.

    ``row_number`` counts data rows from 1 (the header is not a row);
    ``line_number`` is the physical line the row starts on.
    """

    row_number: int
    line_number: int
    values: dict[str, str]
    expected_columns: int
    actual_columns: int

    @property
    def column_mismatch(self) -> bool:
        return self.expected_columns != self.actual_columns


@dataclass(frozen=True)
class FieldIssue:
    """
    One rule violation for one field of one row.
    """

    row: int
    field: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    value: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is IssueSeverity.ERROR


@dataclass(frozen=True)
class CustomerRecord:
    """
    Typed customer row prepared for persistence.
    """

    name: str
    phone: str
    fb_name: str | None = None
    email: str | None = None
    repeat_customer: str | None = None
    address: str | None = None
    city: str | None = None
    postcode: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class OrderRecord:
    """
    Typed order row prepared for persistence.
    """

    name: str
    phone: str
    total: Decimal
    order_id: str | None = None
    order_date: date | None = None
    fb_name: str | None = None
    payment_method: str | None = None
    status: str | None = None
    package_type: str | None = None
    package_amount: Decimal | None = None
    postage: Decimal | None = None
    website_charges: Decimal | None = None
    address: str | None = None
    city: str | None = None
    postcode: str | None = None
    state: str | None = None
    customer_type: str | None = None
    agent: str | None = None
    remark: str | None = None
    currency: str | None = None
    tracking_number: str | None = None
    courier_company: str | None = None


TargetRecord = Union[CustomerRecord, OrderRecord]


@dataclass(frozen=True)
class CandidateRecord:
    """
    Validator verdict for one row: a typed record, or the issues preventing one.
    """

    row_number: int
    target: ImportTarget
    record: TargetRecord | None
    issues: tuple[FieldIssue, ...] = ()
    duplicate_key: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> tuple[FieldIssue, ...]:
        return tuple(issue for issue in self.issues if issue.is_error)

    @property
    def warnings(self) -> tuple[FieldIssue, ...]:
        return tuple(issue for issue in self.issues if not issue.is_error)

    @property
    def is_valid(self) -> bool:
        return self.record is not None and not self.errors


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a read-only validation pass over a whole file.
    """

    is_valid: bool
    import_target: ImportTarget
    total_rows: int
    valid_rows: int
    errors: list[FieldIssue] = field(default_factory=list)
    warnings: list[FieldIssue] = field(default_factory=list)
    preview: list[CandidateRecord] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0
    issues_truncated: bool = False
    detected_headers: tuple[str, ...] = ()
    field_mapping: dict[str, str] = field(default_factory=dict)
    unmapped_headers: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportOptions:
    """
    Caller-controlled knobs for one execute run.
    """

    skip_duplicates: bool = True
    batch_size: int = 100

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1.")


@dataclass(frozen=True)
class RowError:
    """
    One row that was not inserted, with the reason.
    """

    row: int
    reason: str


@dataclass(frozen=True)
class ImportResult:
    """
    End-of-run summary of an execute call.
    """

    success: bool
    total_processed: int
    successful_inserts: int
    failed_inserts: int
    duplicates_skipped: int
    errors: list[RowError] = field(default_factory=list)
    invalid_rows: int = 0
    batches: int = 0
    cancelled: bool = False
