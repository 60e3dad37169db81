"""
tests/test_store_client.py

RESTImportStoreClient with a mocked requests session.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.config import StoreHTTPSettings
from app.connectors.store_client import RESTImportStoreClient, serialize_record
from app.domain.import_records import CustomerRecord, ImportTarget, OrderRecord
from app.repositories.import_store import StoreError, StoreUnavailableError


def _response(status_code: int = 200, payload=None) -> MagicMock:
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.text = "" if payload is None else str(payload)
    response.json.return_value = payload
    return response


def _client(session: MagicMock, **overrides) -> RESTImportStoreClient:
    settings = StoreHTTPSettings(
        base_url="http://crm.test/api/",
        max_retries=2,
        backoff_initial_seconds=0.1,
        **overrides,
    )
    return RESTImportStoreClient(settings=settings, session=session)


@pytest.fixture(autouse=True)
def _no_sleep():
    with patch("app.connectors.store_client.time.sleep") as sleep:
        yield sleep


class TestExists:
    def test_posts_sorted_keys_and_reads_map(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(payload={"data": {"existing": {"customer:602": True}}})

        result = _client(session).exists({"customer:602", "customer:601"}, target=ImportTarget.CUSTOMER)

        assert result == {"customer:601": False, "customer:602": True}
        url = session.post.call_args.args[0]
        assert url == "http://crm.test/api/import/customer/exists"
        assert session.post.call_args.kwargs["json"] == {"keys": ["customer:601", "customer:602"]}

    def test_accepts_list_of_existing_keys(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(payload={"existing": ["order:ref:a"]})

        result = _client(session).exists({"order:ref:a", "order:ref:b"}, target=ImportTarget.ORDER)

        assert result == {"order:ref:a": True, "order:ref:b": False}

    def test_no_keys_no_request(self) -> None:
        session = MagicMock()

        assert _client(session).exists(set(), target=ImportTarget.CUSTOMER) == {}
        session.post.assert_not_called()

    def test_retries_server_errors_then_succeeds(self, _no_sleep) -> None:
        session = MagicMock()
        session.post.side_effect = [
            _response(503, {"error": "busy"}),
            _response(payload={"existing": {}}),
        ]

        result = _client(session).exists({"customer:601"}, target=ImportTarget.CUSTOMER)

        assert result == {"customer:601": False}
        assert session.post.call_count == 2
        _no_sleep.assert_called_once_with(0.1)

    def test_connection_errors_exhaust_into_unavailable(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(StoreUnavailableError):
            _client(session).exists({"customer:601"}, target=ImportTarget.CUSTOMER)

        assert session.post.call_count == 3

    def test_client_error_is_store_error(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(400, {"details": "bad key"})

        with pytest.raises(StoreError, match="bad key"):
            _client(session).exists({"customer:601"}, target=ImportTarget.CUSTOMER)

        assert session.post.call_count == 1

    def test_sends_bearer_token(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(payload={"existing": {}})

        _client(session, api_token="secret").exists({"customer:601"}, target=ImportTarget.CUSTOMER)

        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_timeout_is_capped_by_caller_deadline(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(payload={"existing": {}})

        _client(session).exists({"customer:601"}, target=ImportTarget.CUSTOMER, timeout=2.5)

        assert session.post.call_args.kwargs["timeout"] == 2.5


class TestInsertBatch:
    def test_reads_per_record_outcomes(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(
            payload={"results": [{"ok": True}, {"ok": False, "reason": "phone taken"}]}
        )
        records = [
            ("customer:601", CustomerRecord(name="A", phone="601")),
            ("customer:602", CustomerRecord(name="B", phone="602")),
        ]

        outcomes = _client(session).insert_batch(records, target=ImportTarget.CUSTOMER)

        assert [(outcome.ok, outcome.reason) for outcome in outcomes] == [(True, None), (False, "phone taken")]
        assert session.post.call_args.args[0] == "http://crm.test/api/import/customer/batch"

    def test_write_is_never_retried(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(503, {"error": "busy"})

        with pytest.raises(StoreError):
            _client(session).insert_batch(
                [("customer:601", CustomerRecord(name="A", phone="601"))],
                target=ImportTarget.CUSTOMER,
            )

        assert session.post.call_count == 1

    def test_write_connection_error_is_unavailable_without_retry(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("reset")

        with pytest.raises(StoreUnavailableError):
            _client(session).insert_batch(
                [("customer:601", CustomerRecord(name="A", phone="601"))],
                target=ImportTarget.CUSTOMER,
            )

        assert session.post.call_count == 1

    def test_timeout_is_store_error(self) -> None:
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")

        with pytest.raises(StoreError, match="timed out"):
            _client(session).insert_batch(
                [("customer:601", CustomerRecord(name="A", phone="601"))],
                target=ImportTarget.CUSTOMER,
            )

    def test_missing_results_is_store_error(self) -> None:
        session = MagicMock()
        session.post.return_value = _response(payload={"ok": True})

        with pytest.raises(StoreError):
            _client(session).insert_batch(
                [("customer:601", CustomerRecord(name="A", phone="601"))],
                target=ImportTarget.CUSTOMER,
            )


def test_serialize_record_is_json_ready() -> None:
    record = OrderRecord(name="A", phone="601", total=Decimal("25.5"), order_date=date(2024, 3, 15))

    payload = serialize_record("order:601:2024-03-15:25.50", record)

    assert payload["dedupeKey"] == "order:601:2024-03-15:25.50"
    assert payload["total"] == "25.50"
    assert payload["order_date"] == "2024-03-15"
    assert payload["postage"] is None
