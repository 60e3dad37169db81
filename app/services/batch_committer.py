"""
app/services/batch_committer.py

Commits validated candidate records to the store in bounded batches.

Batches are disjoint row ranges, so their store calls run on a bounded
thread pool; outcomes are reassembled in batch order. A failed batch marks
only its own rows as failed and later batches still run. Store writes are
never retried here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from app.domain.errors import CancellationError
from app.domain.import_records import (
    CandidateRecord,
    ImportOptions,
    ImportResult,
    ImportTarget,
    RowError,
)
from app.logging_utils import log_event
from app.repositories.import_store import ImportStore, StoreError
from app.services.cancellation import CancellationToken
from app.services.duplicate_resolver import DuplicateResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    """
    Result of one batch; ``completed`` is False when cancellation stopped it.
    """

    index: int
    size: int
    inserted: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)
    completed: bool = True

    @property
    def failed(self) -> int:
        return len(self.errors)


def describe_issues(candidate: CandidateRecord) -> str:
    """
    Flatten a rejected candidate's errors into one operator-facing reason.
    """

    return "; ".join(f"{issue.field}: {issue.message}" for issue in candidate.errors)


class BatchCommitter:
    """
    Partitions valid candidates into batches and submits each one atomically.
    """

    def __init__(
        self,
        *,
        store: ImportStore,
        max_workers: int = 4,
        resolver: DuplicateResolver | None = None,
    ) -> None:
        self._store = store
        self._max_workers = max(1, max_workers)
        self._resolver = resolver or DuplicateResolver(store)

    def commit(
        self,
        candidates: Iterable[CandidateRecord],
        *,
        target: ImportTarget,
        options: ImportOptions,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """
        Commit every valid candidate and report per-row outcomes.

        Invalid candidates are never submitted; they are reported as failed
        rows directly. Cancellation stops unstarted batches; batches already
        written stay written.
        """

        token = cancel_token or CancellationToken()
        invalid_errors: list[RowError] = []
        outcomes: list[BatchOutcome] = []
        stopped_early = False
        max_in_flight = self._max_workers * 2

        def _reject(candidate: CandidateRecord) -> None:
            invalid_errors.append(RowError(row=candidate.row_number, reason=describe_issues(candidate)))

        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="import-batch",
        ) as executor:
            in_flight: set[Future[BatchOutcome]] = set()
            try:
                for index, batch in enumerate(self._partition(candidates, options.batch_size, _reject)):
                    if token.cancelled:
                        stopped_early = True
                        break
                    in_flight.add(
                        executor.submit(self._run_batch, index, batch, target, options, token)
                    )
                    if len(in_flight) >= max_in_flight:
                        done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                        outcomes.extend(future.result() for future in done)

                done, _ = wait(in_flight)
                outcomes.extend(future.result() for future in done)
            except BaseException:
                for future in in_flight:
                    future.cancel()
                raise

        return self._summarize(
            outcomes=outcomes,
            invalid_errors=invalid_errors,
            stopped_early=stopped_early,
        )

    @staticmethod
    def _partition(
        candidates: Iterable[CandidateRecord],
        batch_size: int,
        reject: Callable[[CandidateRecord], None],
    ) -> Iterator[list[CandidateRecord]]:
        batch: list[CandidateRecord] = []
        for candidate in candidates:
            if not candidate.is_valid:
                reject(candidate)
                continue
            batch.append(candidate)
            if len(batch) >= batch_size:
                yield batch
                batch = []
        if batch:
            yield batch

    def _run_batch(
        self,
        index: int,
        batch: list[CandidateRecord],
        target: ImportTarget,
        options: ImportOptions,
        token: CancellationToken,
    ) -> BatchOutcome:
        to_insert: list[CandidateRecord] = []
        try:
            token.raise_if_cancelled()
            actions = self._resolver.resolve_batch(
                batch,
                target=target,
                options=options,
                timeout=token.remaining(),
            )
            to_insert = [candidate for candidate, action in zip(batch, actions) if action.is_insert]
            skipped = len(batch) - len(to_insert)
            if not to_insert:
                return BatchOutcome(index=index, size=len(batch), skipped=skipped)

            token.raise_if_cancelled()
            results = self._store.insert_batch(
                [(candidate.duplicate_key, candidate.record) for candidate in to_insert],
                target=target,
                timeout=token.remaining(),
            )
            if len(results) != len(to_insert):
                raise StoreError(
                    f"Store returned {len(results)} outcomes for {len(to_insert)} records."
                )
        except CancellationError:
            log_event(logger, logging.INFO, "import_batch_cancelled", batch=index, rows=len(batch))
            return BatchOutcome(index=index, size=len(batch), completed=False)
        except StoreError as exc:
            # Rows that were already resolved as duplicates stay skipped.
            failed_rows = to_insert or batch
            logger.warning(
                "Import batch failed batch=%s rows=%s-%s error=%s",
                index,
                batch[0].row_number,
                batch[-1].row_number,
                exc,
            )
            return BatchOutcome(
                index=index,
                size=len(batch),
                skipped=len(batch) - len(failed_rows),
                errors=[RowError(row=candidate.row_number, reason=str(exc)) for candidate in failed_rows],
            )

        errors = [
            RowError(row=candidate.row_number, reason=outcome.reason or "Rejected by store.")
            for candidate, outcome in zip(to_insert, results)
            if not outcome.ok
        ]
        outcome = BatchOutcome(
            index=index,
            size=len(batch),
            inserted=len(to_insert) - len(errors),
            skipped=skipped,
            errors=errors,
        )
        log_event(
            logger,
            logging.INFO,
            "import_batch_committed",
            batch=index,
            rows=outcome.size,
            inserted=outcome.inserted,
            skipped=outcome.skipped,
            failed=outcome.failed,
        )
        return outcome

    @staticmethod
    def _summarize(
        *,
        outcomes: list[BatchOutcome],
        invalid_errors: list[RowError],
        stopped_early: bool,
    ) -> ImportResult:
        completed = sorted(
            (outcome for outcome in outcomes if outcome.completed),
            key=lambda outcome: outcome.index,
        )
        cancelled = stopped_early or len(completed) != len(outcomes)

        inserted = sum(outcome.inserted for outcome in completed)
        skipped = sum(outcome.skipped for outcome in completed)
        batch_failed = sum(outcome.failed for outcome in completed)
        failed = batch_failed + len(invalid_errors)

        errors = list(invalid_errors)
        for outcome in completed:
            errors.extend(outcome.errors)
        errors.sort(key=lambda error: error.row)

        return ImportResult(
            success=failed == 0 and not cancelled,
            total_processed=inserted + failed + skipped,
            successful_inserts=inserted,
            failed_inserts=failed,
            duplicates_skipped=skipped,
            errors=errors,
            invalid_rows=len(invalid_errors),
            batches=len(outcomes),
            cancelled=cancelled,
        )
