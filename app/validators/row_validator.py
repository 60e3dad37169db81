"""
app/validators/row_validator.py

Row-level validation and type coercion for customer and order imports.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Mapping

from app.domain.import_records import (
    CandidateRecord,
    CustomerRecord,
    FieldIssue,
    ImportTarget,
    IssueSeverity,
    OrderRecord,
    RawRow,
    TargetRecord,
)
from app.validators.target_schemas import (
    CUSTOMER_SCHEMA,
    ORDER_SCHEMA,
    FieldKind,
    FieldSpec,
    TargetSchema,
    duplicate_key,
)

if TYPE_CHECKING:
    from app.mappers.header_mapper import HeaderMapping

UNAMBIGUOUS_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y",
)

# Two-digit years follow strptime: 69-99 map to 19xx, 00-68 to 20xx.
LOCALE_DATE_FORMATS: dict[str, tuple[str, ...]] = {
    "dmy": ("%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y", "%d-%m-%y"),
    "mdy": ("%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y"),
}

_PHONE_STRIP = re.compile(r"[\s\-().]")
_PHONE_DIGITS = re.compile(r"^\d{9,15}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CURRENCY_PREFIX = re.compile(r"^(rm|myr|\$)\s*", re.IGNORECASE)
_CENT = Decimal("0.01")

COLUMN_MISMATCH_MESSAGE = "column count mismatch"
UNKNOWN_COLUMN_MESSAGE = "unknown column ignored"


class BaseRowValidator:
    """
    Validates and coerces one RawRow against a target schema.

    Every rule for every field runs, so one row can report several issues.
    Subclasses build the typed record and add cross-field checks.
    """

    schema: TargetSchema

    def __init__(self, *, mapping: HeaderMapping, date_locale: str = "dmy") -> None:
        if date_locale not in LOCALE_DATE_FORMATS:
            raise ValueError(f"Unsupported date locale: {date_locale!r}")
        self._mapping = mapping
        self._field_to_header = mapping.field_to_header
        self._date_formats = UNAMBIGUOUS_DATE_FORMATS + LOCALE_DATE_FORMATS[date_locale]

    @property
    def target(self) -> ImportTarget:
        return self.schema.target

    def validate(self, raw_row: RawRow) -> CandidateRecord:
        """
        Validate one row and return its candidate record.
        """

        row_number = raw_row.row_number
        issues: list[FieldIssue] = []

        if self.is_completely_empty_row(raw_row.values):
            issues.append(
                FieldIssue(
                    row=row_number,
                    field="*",
                    message="Completely empty rows are not allowed.",
                )
            )
            return CandidateRecord(row_number=row_number, target=self.target, record=None, issues=tuple(issues))

        if raw_row.column_mismatch:
            issues.append(
                FieldIssue(
                    row=row_number,
                    field="*",
                    message=COLUMN_MISMATCH_MESSAGE,
                    value=f"expected {raw_row.expected_columns}, got {raw_row.actual_columns}",
                )
            )

        for header in self._mapping.unmapped_headers:
            value = raw_row.values.get(header)
            if not self._is_blank(value):
                issues.append(
                    FieldIssue(
                        row=row_number,
                        field=header,
                        message=UNKNOWN_COLUMN_MESSAGE,
                        severity=IssueSeverity.WARNING,
                        value=self._stringify_value(value),
                    )
                )

        values: dict[str, Any] = {}
        for spec in self.schema.fields:
            header = self._field_to_header.get(spec.name)
            raw_value = raw_row.values.get(header) if header is not None else None
            values[spec.name] = self._parse_field(
                spec=spec,
                value=raw_value,
                row_number=row_number,
                errors=issues,
            )

        self._check_cross_fields(values=values, row_number=row_number, issues=issues)

        data = {name: value for name, value in values.items() if value is not None}
        if any(issue.is_error for issue in issues):
            return CandidateRecord(
                row_number=row_number,
                target=self.target,
                record=None,
                issues=tuple(issues),
                data=data,
            )

        record = self._build_record(values)
        return CandidateRecord(
            row_number=row_number,
            target=self.target,
            record=record,
            issues=tuple(issues),
            duplicate_key=duplicate_key(record),
            data=data,
        )

    def is_completely_empty_row(self, row: Mapping[str, Any]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        return all(self._is_blank(value) for value in row.values())

    def _build_record(self, values: dict[str, Any]) -> TargetRecord:
        raise NotImplementedError("Subclasses must implement _build_record()")

    def _check_cross_fields(
        self,
        *,
        values: dict[str, Any],
        row_number: int,
        issues: list[FieldIssue],
    ) -> None:
        return None

    def _parse_field(
        self,
        *,
        spec: FieldSpec,
        value: str | None,
        row_number: int,
        errors: list[FieldIssue],
    ) -> Any:
        if self._is_blank(value):
            if spec.required:
                errors.append(
                    FieldIssue(
                        row=row_number,
                        field=spec.name,
                        message="Required value is missing.",
                        value=self._stringify_value(value),
                    )
                )
            return None

        raw = str(value).strip()
        if spec.kind == FieldKind.PHONE:
            parsed = self._parse_phone(raw, spec=spec, row_number=row_number, errors=errors)
        elif spec.kind == FieldKind.EMAIL:
            parsed = self._parse_email(raw, spec=spec, row_number=row_number, errors=errors)
        elif spec.kind == FieldKind.AMOUNT:
            return self._parse_amount(raw, spec=spec, row_number=row_number, errors=errors)
        elif spec.kind == FieldKind.DATE:
            return self._parse_date(raw, spec=spec, row_number=row_number, errors=errors)
        elif spec.kind == FieldKind.ENUM:
            parsed = self._parse_enum(raw, spec=spec, row_number=row_number, errors=errors)
        else:
            parsed = raw

        if parsed is not None and spec.max_length is not None and len(parsed) > spec.max_length:
            errors.append(
                FieldIssue(
                    row=row_number,
                    field=spec.name,
                    message=f"Value is longer than {spec.max_length} characters.",
                    value=raw,
                )
            )
            return None
        return parsed

    def _parse_phone(
        self,
        raw: str,
        *,
        spec: FieldSpec,
        row_number: int,
        errors: list[FieldIssue],
    ) -> str | None:
        digits = _PHONE_STRIP.sub("", raw)
        if digits.startswith("+"):
            digits = digits[1:]
        if not _PHONE_DIGITS.match(digits):
            errors.append(
                FieldIssue(
                    row=row_number,
                    field=spec.name,
                    message="Invalid phone number. Expected 9 to 15 digits.",
                    value=raw,
                )
            )
            return None
        return digits

    def _parse_email(
        self,
        raw: str,
        *,
        spec: FieldSpec,
        row_number: int,
        errors: list[FieldIssue],
    ) -> str | None:
        if not _EMAIL.match(raw):
            errors.append(
                FieldIssue(row=row_number, field=spec.name, message="Invalid email address.", value=raw)
            )
            return None
        return raw.lower()

    def _parse_amount(
        self,
        raw: str,
        *,
        spec: FieldSpec,
        row_number: int,
        errors: list[FieldIssue],
    ) -> Decimal | None:
        cleaned = _CURRENCY_PREFIX.sub("", raw).replace(",", "").strip()
        try:
            amount = Decimal(cleaned)
        except (InvalidOperation, ValueError):
            errors.append(
                FieldIssue(row=row_number, field=spec.name, message="Value must be numeric.", value=raw)
            )
            return None

        if not amount.is_finite():
            errors.append(
                FieldIssue(row=row_number, field=spec.name, message="Value must be a finite number.", value=raw)
            )
            return None
        if amount < 0:
            errors.append(
                FieldIssue(row=row_number, field=spec.name, message="Amount must not be negative.", value=raw)
            )
            return None
        amount = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
        if spec.max_amount is not None and amount > spec.max_amount:
            errors.append(
                FieldIssue(
                    row=row_number,
                    field=spec.name,
                    message=f"Amount must not exceed {spec.max_amount}.",
                    value=raw,
                )
            )
            return None
        return amount

    def _parse_date(
        self,
        raw: str,
        *,
        spec: FieldSpec,
        row_number: int,
        errors: list[FieldIssue],
    ) -> date | None:
        for fmt in self._date_formats:
            try:
                return datetime.strptime(raw, fmt).date()
            except ValueError:
                continue

        errors.append(
            FieldIssue(row=row_number, field=spec.name, message="Invalid date format.", value=raw)
        )
        return None

    def _parse_enum(
        self,
        raw: str,
        *,
        spec: FieldSpec,
        row_number: int,
        errors: list[FieldIssue],
    ) -> str | None:
        normalized = raw.lower()
        if normalized not in spec.choices:
            allowed = ", ".join(spec.choices)
            errors.append(
                FieldIssue(
                    row=row_number,
                    field=spec.name,
                    message=f"Unsupported {spec.name}. Allowed values: {allowed}.",
                    value=raw,
                )
            )
            return None
        return normalized

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)


class CustomerRowValidator(BaseRowValidator):
    schema = CUSTOMER_SCHEMA

    def _build_record(self, values: dict[str, Any]) -> CustomerRecord:
        return CustomerRecord(**values)


class OrderRowValidator(BaseRowValidator):
    schema = ORDER_SCHEMA

    _LINE_AMOUNT_FIELDS: tuple[str, ...] = ("package_amount", "postage", "website_charges")

    def _build_record(self, values: dict[str, Any]) -> OrderRecord:
        return OrderRecord(**values)

    def _check_cross_fields(
        self,
        *,
        values: dict[str, Any],
        row_number: int,
        issues: list[FieldIssue],
    ) -> None:
        total = values.get("total")
        line_amounts = [values[name] for name in self._LINE_AMOUNT_FIELDS if values.get(name) is not None]
        if total is not None and line_amounts:
            line_sum = sum(line_amounts, Decimal("0.00"))
            if line_sum != total:
                issues.append(
                    FieldIssue(
                        row=row_number,
                        field="total",
                        message=f"Total does not equal the sum of line amounts ({line_sum:.2f}).",
                        value=f"{total:.2f}",
                    )
                )

        order_date = values.get("order_date")
        if order_date is not None and order_date > date.today():
            issues.append(
                FieldIssue(
                    row=row_number,
                    field="order_date",
                    message="Order date is in the future.",
                    severity=IssueSeverity.WARNING,
                    value=order_date.isoformat(),
                )
            )


_VALIDATORS: dict[ImportTarget, type[BaseRowValidator]] = {
    ImportTarget.CUSTOMER: CustomerRowValidator,
    ImportTarget.ORDER: OrderRowValidator,
}


def build_row_validator(
    target: ImportTarget | str,
    *,
    mapping: HeaderMapping,
    date_locale: str = "dmy",
) -> BaseRowValidator:
    """
    Return the validator for ``target`` bound to one file's header mapping.
    """

    validator_cls = _VALIDATORS[ImportTarget(target)]
    return validator_cls(mapping=mapping, date_locale=date_locale)
