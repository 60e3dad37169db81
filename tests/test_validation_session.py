"""
tests/test_validation_session.py

Pytest tests for the read-only validation pass.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from app.domain.errors import FormatError
from app.domain.import_records import ImportTarget, IssueSeverity
from app.services.validation_session import ValidationSession, open_candidates

SCENARIO_A = b"name,phone,total\nAlice,60123456789,25.00\nBob,not-a-number,10.00\n"


@pytest.fixture()
def session() -> ValidationSession:
    return ValidationSession(preview_limit=50, max_issues=500)


class TestScenarios:
    @pytest.mark.parametrize("target", [ImportTarget.CUSTOMER, ImportTarget.ORDER])
    def test_one_bad_phone_out_of_two_rows(self, session: ValidationSession, target: ImportTarget) -> None:
        result = session.run_validation(SCENARIO_A, target=target)

        assert result.total_rows == 2
        assert result.valid_rows == 1
        assert result.is_valid is False
        assert [(issue.row, issue.field, issue.severity) for issue in result.errors] == [
            (2, "phone", IssueSeverity.ERROR)
        ]

    def test_empty_file_raises_without_result(self, session: ValidationSession) -> None:
        with pytest.raises(FormatError) as exc_info:
            session.run_validation(b"", target=ImportTarget.CUSTOMER)

        assert exc_info.value.reason == "empty"


class TestValidationResult:
    def test_all_valid_file(self, session: ValidationSession, customer_file) -> None:
        result = session.run_validation(customer_file(3), target=ImportTarget.CUSTOMER)

        assert result.is_valid is True
        assert result.total_rows == result.valid_rows == 3
        assert result.errors == []
        assert result.field_mapping == {"name": "name", "phone": "phone"}

    def test_header_only_file_is_valid_and_empty(self, session: ValidationSession) -> None:
        result = session.run_validation(b"name,phone\n", target=ImportTarget.CUSTOMER)

        assert result.is_valid is True
        assert result.total_rows == 0
        assert result.preview == []

    def test_preview_is_capped_and_ordered(self, customer_file) -> None:
        session = ValidationSession(preview_limit=5)

        result = session.run_validation(customer_file(20), target=ImportTarget.CUSTOMER)

        assert result.total_rows == 20
        assert [candidate.row_number for candidate in result.preview] == [1, 2, 3, 4, 5]

    def test_preview_includes_invalid_rows(self, session: ValidationSession) -> None:
        result = session.run_validation(SCENARIO_A, target=ImportTarget.ORDER)

        assert [candidate.is_valid for candidate in result.preview] == [True, False]
        assert result.preview[1].data == {"name": "Bob", "total": Decimal("10.00")}

    def test_issue_lists_are_capped_but_counts_exact(self, make_file) -> None:
        rows = [[f"Customer {index}", "bad"] for index in range(1, 11)]
        session = ValidationSession(max_issues=3)

        result = session.run_validation(make_file(["name", "phone"], rows), target=ImportTarget.CUSTOMER)

        assert result.error_count == 10
        assert len(result.errors) == 3
        assert result.issues_truncated is True
        assert result.valid_rows == 0

    def test_errors_and_warnings_are_separated(self, session: ValidationSession) -> None:
        result = session.run_validation(SCENARIO_A, target=ImportTarget.CUSTOMER)

        assert result.unmapped_headers == ("total",)
        assert result.warning_count == 2
        assert all(issue.severity is IssueSeverity.WARNING for issue in result.warnings)
        assert [issue.row for issue in result.warnings] == [1, 2]

    def test_counts_are_consistent(self, session: ValidationSession, make_file) -> None:
        rows = [
            ["Alice", "60123456789", "25.00"],
            ["", "", ""],
            ["Carol", "60111111111", "-1"],
            ["Dan", "60122222222", "7"],
        ]

        result = session.run_validation(make_file(["name", "phone", "total"], rows), target=ImportTarget.ORDER)

        invalid_rows = {issue.row for issue in result.errors}
        assert result.total_rows == 4
        assert invalid_rows == {2, 3}
        assert result.valid_rows == result.total_rows - len(invalid_rows)
        assert result.valid_rows <= result.total_rows

    def test_validation_errors_are_logged(self, session: ValidationSession, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="app.services.validation_session"):
            session.run_validation(SCENARIO_A, target=ImportTarget.ORDER)

        assert any("field=phone" in record.getMessage() for record in caplog.records)


def test_open_candidates_exposes_mapping_before_rows() -> None:
    stream = open_candidates(SCENARIO_A, target=ImportTarget.ORDER)

    assert stream.mapping.field_to_header["total"] == "total"
    assert [candidate.row_number for candidate in stream.candidates] == [1, 2]
