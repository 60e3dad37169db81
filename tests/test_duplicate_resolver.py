from __future__ import annotations

from app.domain.import_records import CandidateRecord, CustomerRecord, ImportOptions, ImportTarget
from app.services.duplicate_resolver import DUPLICATE_REASON, INSERT, SKIP, DuplicateResolver, resolve


def _candidate(row: int, phone: str) -> CandidateRecord:
    return CandidateRecord(
        row_number=row,
        target=ImportTarget.CUSTOMER,
        record=CustomerRecord(name=f"Customer {row}", phone=phone),
        duplicate_key=f"customer:{phone}",
    )


def test_resolve_skips_existing_key() -> None:
    action = resolve(_candidate(1, "60123456789"), {"customer:60123456789": True})

    assert action.kind == SKIP
    assert action.reason == DUPLICATE_REASON
    assert not action.is_insert


def test_resolve_inserts_unknown_or_absent_key() -> None:
    assert resolve(_candidate(1, "601"), {"customer:601": False}).kind == INSERT
    assert resolve(_candidate(1, "601"), {}).kind == INSERT


def test_resolve_batch_makes_one_existence_call(store_factory) -> None:
    store = store_factory(existing={"customer:602"})
    resolver = DuplicateResolver(store)
    batch = [_candidate(1, "601"), _candidate(2, "602"), _candidate(3, "603")]

    actions = resolver.resolve_batch(batch, target=ImportTarget.CUSTOMER, options=ImportOptions())

    assert [action.kind for action in actions] == [INSERT, SKIP, INSERT]
    assert store.exists_calls == [{"customer:601", "customer:602", "customer:603"}]


def test_skip_duplicates_off_never_queries_store(store_factory) -> None:
    store = store_factory(existing={"customer:602"})
    resolver = DuplicateResolver(store)

    actions = resolver.resolve_batch(
        [_candidate(1, "602")],
        target=ImportTarget.CUSTOMER,
        options=ImportOptions(skip_duplicates=False),
    )

    assert [action.kind for action in actions] == [INSERT]
    assert store.exists_calls == []


def test_empty_batch_never_queries_store(memory_store) -> None:
    actions = DuplicateResolver(memory_store).resolve_batch(
        [],
        target=ImportTarget.CUSTOMER,
        options=ImportOptions(),
    )

    assert actions == []
    assert memory_store.exists_calls == []
