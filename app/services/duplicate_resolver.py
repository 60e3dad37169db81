"""
app/services/duplicate_resolver.py

Decides insert or skip for candidate records based on store existence.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from app.domain.import_records import CandidateRecord, ImportOptions, ImportTarget
from app.repositories.import_store import ImportStore

INSERT = "insert"
SKIP = "skip"

DUPLICATE_REASON = "Duplicate of an existing record."


@dataclass(frozen=True)
class ResolveAction:
    kind: str
    reason: str | None = None

    @property
    def is_insert(self) -> bool:
        return self.kind == INSERT


_INSERT_ACTION = ResolveAction(kind=INSERT)


def resolve(candidate: CandidateRecord, existing: Mapping[str, bool]) -> ResolveAction:
    """
    Decide one candidate against an already-fetched existence map.
    """

    if candidate.duplicate_key is not None and existing.get(candidate.duplicate_key, False):
        return ResolveAction(kind=SKIP, reason=DUPLICATE_REASON)
    return _INSERT_ACTION


class DuplicateResolver:
    """
    Resolves a whole batch with a single existence query.
    """

    def __init__(self, store: ImportStore) -> None:
        self._store = store

    def resolve_batch(
        self,
        candidates: Sequence[CandidateRecord],
        *,
        target: ImportTarget,
        options: ImportOptions,
        timeout: float | None = None,
    ) -> list[ResolveAction]:
        """
        Return one action per candidate, in order.

        With ``skip_duplicates`` off the store is not queried.
        """

        if not options.skip_duplicates or not candidates:
            return [_INSERT_ACTION for _ in candidates]

        keys = {candidate.duplicate_key for candidate in candidates if candidate.duplicate_key}
        existing = self._store.exists(keys, target=target, timeout=timeout) if keys else {}
        return [resolve(candidate, existing) for candidate in candidates]
