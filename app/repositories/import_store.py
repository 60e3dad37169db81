"""
app/repositories/import_store.py

Store contract consumed by the import pipeline, and its failure types.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from app.domain.import_records import ImportTarget, TargetRecord


class StoreError(RuntimeError):
    """
    Raised when one existence check or batch write is rejected by the store.

    Recovered per batch by the committer.
    """


class StoreUnavailableError(RuntimeError):
    """
    Raised when the store cannot be reached at all.

    Not a StoreError subclass: an outage aborts the whole import.
    """


@dataclass(frozen=True)
class InsertOutcome:
    """
    Store verdict for one record of a batch write.
    """

    ok: bool
    reason: str | None = None


class ImportStore(Protocol):
    def exists(
        self,
        keys: Iterable[str],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> dict[str, bool]:
        """
        Return, for every key, whether a record with that duplicate key exists.
        """
        ...

    def insert_batch(
        self,
        records: Sequence[tuple[str, TargetRecord]],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> list[InsertOutcome]:
        """
        Insert ``(duplicate_key, record)`` pairs; one outcome per pair, in order.

        Atomic stores either return all-ok outcomes or raise StoreError.
        """
        ...
