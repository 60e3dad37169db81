"""
tests/test_import_router.py

HTTP contract of the /api/import endpoints, served by FastAPI's TestClient
with the import session wired to an in-memory store.
"""

from __future__ import annotations

import io

import pytest
from fastapi import FastAPI
from openpyxl import Workbook, load_workbook
from fastapi.testclient import TestClient

from app.api.dependencies import XLSX_CONTENT_TYPE
from app.api.routers import import_router
from app.config import ImportSettings, get_import_settings
from app.repositories.import_store import StoreUnavailableError
from app.services.import_session import ImportSession, get_import_session

SCENARIO_A = b"name,phone,total\nAlice,60123456789,25.00\nBob,not-a-number,10.00\n"


@pytest.fixture()
def settings() -> ImportSettings:
    return ImportSettings(max_upload_bytes=16384, max_workers=2)


@pytest.fixture()
def client(memory_store, settings: ImportSettings):
    application = FastAPI()
    application.include_router(import_router)
    import_session = ImportSession(store=memory_store, settings=settings)
    application.dependency_overrides[get_import_session] = lambda: import_session
    application.dependency_overrides[get_import_settings] = lambda: settings
    with TestClient(application) as test_client:
        yield test_client


def _upload(content: bytes, filename: str = "orders.csv", content_type: str = "text/csv") -> dict:
    return {"file": (filename, content, content_type)}


class TestValidateEndpoint:
    def test_returns_camel_case_envelope(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "order"},
            files=_upload(SCENARIO_A),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["isValid"] is False
        assert data["totalRows"] == 2
        assert data["validRows"] == 1
        assert data["errors"] == [
            {
                "row": 2,
                "field": "phone",
                "message": "Invalid phone number. Expected 9 to 15 digits.",
                "severity": "error",
                "value": "not-a-number",
            }
        ]
        assert data["preview"][0]["data"] == {"name": "Alice", "phone": "60123456789", "total": "25.00"}
        assert data["fieldMapping"] == {"name": "name", "phone": "phone", "total": "total"}

    def test_empty_file_is_400_with_reason(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "customer"},
            files=_upload(b""),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "empty"

    def test_unknown_target_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "shipment"},
            files=_upload(SCENARIO_A),
        )

        assert response.status_code == 422

    def test_non_tabular_upload_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "order"},
            files=_upload(b"%PDF", filename="orders.pdf", content_type="application/pdf"),
        )

        assert response.status_code == 400

    def test_oversized_upload_is_413(self, client: TestClient) -> None:
        content = b"name,phone\n" + b"Alice,60123456789\n" * 1000

        response = client.post(
            "/api/import/validate",
            params={"importTarget": "customer"},
            files=_upload(content),
        )

        assert response.status_code == 413

    def test_xlsx_upload_is_read_as_workbook(self, client: TestClient) -> None:
        workbook = Workbook()
        workbook.active.append(["name", "phone", "total"])
        workbook.active.append(["Alice", 60123456789, 25])
        workbook.active.append(["Bob", "not-a-number", 10])
        buffer = io.BytesIO()
        workbook.save(buffer)

        response = client.post(
            "/api/import/validate",
            params={"importTarget": "order"},
            files=_upload(buffer.getvalue(), filename="orders.xlsx", content_type=XLSX_CONTENT_TYPE),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalRows"] == 2
        assert data["validRows"] == 1
        assert data["preview"][0]["data"] == {"name": "Alice", "phone": "60123456789", "total": "25.00"}

    def test_legacy_xls_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "order"},
            files=_upload(b"\xd0\xcf\x11\xe0", filename="orders.xls", content_type="application/vnd.ms-excel"),
        )

        assert response.status_code == 400
        assert ".xlsx" in response.json()["detail"]

    def test_tsv_extension_selects_tab_delimiter(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/validate",
            params={"importTarget": "customer"},
            files=_upload(b"name\tphone\nAlice\t60123456789\n", filename="people.tsv", content_type="text/plain"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["isValid"] is True


class TestExecuteEndpoint:
    def test_commits_and_reports(self, client: TestClient, memory_store) -> None:
        response = client.post(
            "/api/import/execute",
            params={"importTarget": "order"},
            files=_upload(SCENARIO_A),
            data={"skipDuplicates": "true", "batchSize": "1"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["success"] is False
        assert data["totalProcessed"] == 2
        assert data["successfulInserts"] == 1
        assert data["failedInserts"] == 1
        assert data["duplicatesSkipped"] == 0
        assert data["errors"][0]["row"] == 2
        assert len(memory_store.records) == 1

    def test_second_upload_skips_duplicates(self, client: TestClient) -> None:
        for _ in range(2):
            response = client.post(
                "/api/import/execute",
                params={"importTarget": "order"},
                files=_upload(SCENARIO_A),
            )

        data = response.json()["data"]
        assert data["successfulInserts"] == 0
        assert data["duplicatesSkipped"] == 1

    def test_zero_batch_size_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/import/execute",
            params={"importTarget": "order"},
            files=_upload(SCENARIO_A),
            data={"batchSize": "0"},
        )

        assert response.status_code == 422

    def test_store_outage_is_503(self, client: TestClient, memory_store) -> None:
        memory_store.unavailable = True

        response = client.post(
            "/api/import/execute",
            params={"importTarget": "order"},
            files=_upload(SCENARIO_A),
        )

        assert response.status_code == 503

    def test_format_error_is_400(self, client: TestClient, memory_store) -> None:
        response = client.post(
            "/api/import/execute",
            params={"importTarget": "order", "format": "xls"},
            files=_upload(SCENARIO_A),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "unsupported_format"
        assert memory_store.insert_calls == []


class TestTemplateEndpoint:
    def test_download_headers(self, client: TestClient) -> None:
        response = client.get("/api/import/template", params={"importTarget": "customer"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="customer_import_template.csv"' in response.headers["content-disposition"]
        assert response.content.startswith(b"name,phone,")
        assert response.content.count(b"\r\n") == 1

    def test_xlsx_template(self, client: TestClient) -> None:
        response = client.get(
            "/api/import/template",
            params={"importTarget": "customer", "includeSample": "true", "format": "xlsx"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(XLSX_CONTENT_TYPE)
        assert 'filename="customer_import_template.xlsx"' in response.headers["content-disposition"]
        worksheet = load_workbook(io.BytesIO(response.content), read_only=True).active
        rows = list(worksheet.iter_rows(values_only=True))
        assert rows[0][:2] == ("name", "phone")
        assert len(rows) == 2

    def test_include_sample_adds_one_row(self, client: TestClient) -> None:
        response = client.get(
            "/api/import/template",
            params={"importTarget": "order", "includeSample": "true"},
        )

        assert response.content.count(b"\r\n") == 2


def test_store_unavailable_error_is_not_a_store_error() -> None:
    from app.repositories.import_store import StoreError

    assert not issubclass(StoreUnavailableError, StoreError)
