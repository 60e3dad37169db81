"""
app/services/validation_session.py

Read-only validation pass over an uploaded file.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from app.domain.import_records import CandidateRecord, FieldIssue, ImportTarget, ValidationResult
from app.mappers.header_mapper import HeaderMapping, resolve_headers
from app.parsers.row_parser import FileSource, parse_rows
from app.validators.row_validator import build_row_validator
from app.validators.target_schemas import get_schema

logger = logging.getLogger(__name__)


@dataclass
class CandidateStream:
    """
    Header mapping of an opened file plus its lazily validated rows.
    """

    mapping: HeaderMapping
    candidates: Iterator[CandidateRecord]


def open_candidates(
    source: FileSource,
    *,
    target: ImportTarget,
    declared_format: str | None = "csv",
    date_locale: str = "dmy",
) -> CandidateStream:
    """
    Parse ``source`` and validate each row as it is read.

    Shared by validate and execute so both agree on what counts as valid.
    Raises FormatError for files that cannot be opened.
    """

    parsed = parse_rows(source, declared_format)
    mapping = resolve_headers(parsed.headers, get_schema(target))
    validator = build_row_validator(target, mapping=mapping, date_locale=date_locale)
    return CandidateStream(
        mapping=mapping,
        candidates=(validator.validate(raw_row) for raw_row in parsed.rows),
    )


class ValidationSession:
    """
    Builds a ValidationResult without touching the store.
    """

    def __init__(
        self,
        *,
        preview_limit: int = 50,
        max_issues: int = 500,
        date_locale: str = "dmy",
        log_validation_issues: bool = True,
    ) -> None:
        self._preview_limit = max(0, preview_limit)
        self._max_issues = max(1, max_issues)
        self._date_locale = date_locale
        self._log_validation_issues = log_validation_issues

    def run_validation(
        self,
        source: FileSource,
        *,
        target: ImportTarget,
        declared_format: str | None = "csv",
    ) -> ValidationResult:
        """
        Validate every row of the file and summarize the outcome.

        Row-level problems never stop the pass; only FormatError does.
        """

        stream = open_candidates(
            source,
            target=target,
            declared_format=declared_format,
            date_locale=self._date_locale,
        )

        total_rows = 0
        valid_rows = 0
        error_count = 0
        warning_count = 0
        errors: list[FieldIssue] = []
        warnings: list[FieldIssue] = []
        preview: list[CandidateRecord] = []

        for candidate in stream.candidates:
            total_rows += 1
            if candidate.is_valid:
                valid_rows += 1
            if len(preview) < self._preview_limit:
                preview.append(candidate)

            for issue in candidate.issues:
                if issue.is_error:
                    error_count += 1
                    self._record_issue(errors, issue)
                else:
                    warning_count += 1
                    self._record_issue(warnings, issue)

        truncated = len(errors) < error_count or len(warnings) < warning_count
        logger.info(
            "Import validation finished target=%s total_rows=%s valid_rows=%s errors=%s warnings=%s",
            target.value,
            total_rows,
            valid_rows,
            error_count,
            warning_count,
        )

        return ValidationResult(
            is_valid=valid_rows == total_rows,
            import_target=target,
            total_rows=total_rows,
            valid_rows=valid_rows,
            errors=errors,
            warnings=warnings,
            preview=preview,
            error_count=error_count,
            warning_count=warning_count,
            issues_truncated=truncated,
            detected_headers=stream.mapping.source_headers,
            field_mapping=dict(stream.mapping.header_to_field),
            unmapped_headers=stream.mapping.unmapped_headers,
        )

    def _record_issue(self, captured: list[FieldIssue], issue: FieldIssue) -> None:
        if self._log_validation_issues and issue.is_error:
            logger.warning(
                "Import validation error row=%s field=%s message=%s value=%r",
                issue.row,
                issue.field,
                issue.message,
                issue.value,
            )

        if len(captured) < self._max_issues:
            captured.append(issue)
