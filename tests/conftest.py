"""
tests/conftest.py

Shared fixtures for the import pipeline tests: an in-memory ImportStore and
small file builders.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence

import pytest

from app.domain.import_records import ImportTarget, TargetRecord
from app.parsers.row_parser import write_rows
from app.repositories.import_store import InsertOutcome, StoreError, StoreUnavailableError


class InMemoryImportStore:
    """
    Atomic, thread-safe fake store keyed by duplicate key.

    ``fail_keys``: a batch containing any of these keys raises StoreError.
    ``reject_keys``: those records get a per-record error outcome.
    ``unavailable``: every call raises StoreUnavailableError.

    Keys are unique like the database column: a batch that repeats a key, or
    carries one already stored or listed in ``existing``, raises StoreError
    and writes nothing.
    """

    def __init__(
        self,
        *,
        existing: Iterable[str] = (),
        fail_keys: Iterable[str] = (),
        reject_keys: Iterable[str] = (),
        unavailable: bool = False,
    ) -> None:
        self.records: dict[str, TargetRecord] = {}
        self.existing = set(existing)
        self.fail_keys = set(fail_keys)
        self.reject_keys = set(reject_keys)
        self.unavailable = unavailable
        self.exists_calls: list[set[str]] = []
        self.insert_calls: list[list[str]] = []
        self.timeouts: list[float | None] = []
        self._lock = threading.Lock()

    def exists(
        self,
        keys: Iterable[str],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> dict[str, bool]:
        if self.unavailable:
            raise StoreUnavailableError("store down")
        key_set = set(keys)
        with self._lock:
            self.exists_calls.append(key_set)
            self.timeouts.append(timeout)
            return {key: key in self.records or key in self.existing for key in key_set}

    def insert_batch(
        self,
        records: Sequence[tuple[str, TargetRecord]],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> list[InsertOutcome]:
        if self.unavailable:
            raise StoreUnavailableError("store down")
        keys = [key for key, _ in records]
        with self._lock:
            self.insert_calls.append(keys)
            self.timeouts.append(timeout)
            if self.fail_keys.intersection(keys):
                raise StoreError("batch rejected by store")
            seen: set[str] = set()
            for key in keys:
                if key in seen or key in self.records or key in self.existing:
                    raise StoreError(f"duplicate key {key}")
                seen.add(key)

            outcomes: list[InsertOutcome] = []
            for key, record in records:
                if key in self.reject_keys:
                    outcomes.append(InsertOutcome(ok=False, reason="rejected by backend"))
                    continue
                self.records[key] = record
                outcomes.append(InsertOutcome(ok=True))
            return outcomes


@pytest.fixture()
def memory_store() -> InMemoryImportStore:
    return InMemoryImportStore()


@pytest.fixture()
def store_factory() -> Callable[..., InMemoryImportStore]:
    return InMemoryImportStore


@pytest.fixture()
def make_file() -> Callable[..., bytes]:
    """
    Build file bytes from a header and rows: make_file(["name"], [["Alice"]]).
    """

    def _make(headers: Sequence[str], rows: Sequence[Sequence[str]] = (), file_format: str = "csv") -> bytes:
        return write_rows(headers, rows, file_format)

    return _make


@pytest.fixture()
def customer_file(make_file: Callable[..., bytes]) -> Callable[[int], bytes]:
    """
    ``customer_file(n)`` builds n valid customer rows with distinct phones.
    """

    def _build(count: int) -> bytes:
        rows = [[f"Customer {index}", f"6012{index:07d}"] for index in range(1, count + 1)]
        return make_file(["name", "phone"], rows)

    return _build
