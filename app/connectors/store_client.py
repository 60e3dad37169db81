"""
app/connectors/store_client.py

ImportStore implementation backed by the CRM backend's REST API.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any

import requests

from app.config import StoreHTTPSettings
from app.domain.import_records import ImportTarget, TargetRecord
from app.repositories.import_store import InsertOutcome, StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class RESTImportStoreClient:
    """
    Talks to ``{base_url}/import/{target}/exists`` and ``.../batch``.

    Only the read-only existence check is retried. A batch write is sent
    exactly once: retrying a write that may have been applied risks
    duplicate inserts.
    """

    def __init__(
        self,
        *,
        settings: StoreHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = settings.base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout_seconds = settings.timeout_seconds
        self._max_retries = settings.max_retries
        self._backoff_initial_seconds = settings.backoff_initial_seconds
        self._backoff_multiplier = settings.backoff_multiplier
        self._headers = {"Accept": "application/json"}
        if settings.api_token:
            self._headers["Authorization"] = f"Bearer {settings.api_token}"

    def exists(
        self,
        keys: Iterable[str],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> dict[str, bool]:
        key_list = sorted(set(keys))
        if not key_list:
            return {}

        payload = self._post_json(
            url=self._url(target, "exists"),
            body={"keys": key_list},
            timeout=timeout,
            max_retries=self._max_retries,
        )
        existing = payload.get("existing") if isinstance(payload, dict) else None
        if isinstance(existing, list):
            present = {str(key) for key in existing}
            return {key: key in present for key in key_list}
        if isinstance(existing, dict):
            return {key: bool(existing.get(key, False)) for key in key_list}
        raise StoreError("Store existence response is missing 'existing'.")

    def insert_batch(
        self,
        records: Sequence[tuple[str, TargetRecord]],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> list[InsertOutcome]:
        if not records:
            return []

        payload = self._post_json(
            url=self._url(target, "batch"),
            body={"records": [serialize_record(key, record) for key, record in records]},
            timeout=timeout,
            max_retries=0,
        )
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise StoreError("Store batch response is missing 'results'.")
        return [
            InsertOutcome(
                ok=bool(item.get("ok")),
                reason=item.get("reason") or item.get("error"),
            )
            if isinstance(item, dict)
            else InsertOutcome(ok=False, reason="Malformed store result.")
            for item in results
        ]

    def _url(self, target: ImportTarget, action: str) -> str:
        return f"{self._base_url}/import/{ImportTarget(target).value}/{action}"

    def _post_json(
        self,
        *,
        url: str,
        body: dict[str, Any],
        timeout: float | None,
        max_retries: int,
    ) -> Any:
        """
        POST ``body`` and return the parsed JSON (``data`` envelope unwrapped).
        """

        request_timeout = self._timeout_seconds if timeout is None else min(timeout, self._timeout_seconds)
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                response = self._session.post(
                    url,
                    json=body,
                    headers=self._headers,
                    timeout=max(request_timeout, 0.001),
                )
                if response.status_code in RETRYABLE_STATUS_CODES and attempt < max_retries:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                if response.status_code >= 400:
                    logger.error(
                        "Store request failed status=%s url=%s body=%s",
                        response.status_code,
                        url,
                        response.text[:500],
                    )
                    raise StoreError(_error_reason(response))
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise StoreError("Store response was not valid JSON.") from exc
                if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                    return payload["data"]
                return payload
            except requests.HTTPError as exc:
                last_error = exc
            except requests.Timeout as exc:
                raise StoreError("Store request timed out.") from exc
            except requests.ConnectionError as exc:
                last_error = exc

            if attempt >= max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Store request retry attempt=%s/%s wait_seconds=%.2f url=%s",
                attempt + 1,
                max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error("Store request exhausted retries url=%s error=%s", url, last_error)
        raise StoreUnavailableError("Store is unavailable.") from last_error


def serialize_record(key: str, record: TargetRecord) -> dict[str, Any]:
    """
    JSON-ready payload for one record, with its duplicate key.
    """

    payload: dict[str, Any] = {"dedupeKey": key}
    for name, value in asdict(record).items():
        if isinstance(value, Decimal):
            payload[name] = f"{value:.2f}"
        elif isinstance(value, date):
            payload[name] = value.isoformat()
        else:
            payload[name] = value
    return payload


def _error_reason(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Store returned HTTP {response.status_code}."
    if isinstance(body, dict):
        detail = body.get("details") or body.get("error") or body.get("message")
        if detail:
            return f"Store returned HTTP {response.status_code}: {detail}"
    return f"Store returned HTTP {response.status_code}."
