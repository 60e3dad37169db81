"""
app/repositories/sqlalchemy_import_store.py

Database-backed ImportStore for customer and order imports.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.exc import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from app.domain.import_records import ImportTarget, TargetRecord
from app.repositories.import_store import InsertOutcome, StoreError, StoreUnavailableError
from db.models.customer import Customer
from db.models.order import Order

_LOOKUP_CHUNK_SIZE = 500

_MODELS: dict[ImportTarget, type[Customer] | type[Order]] = {
    ImportTarget.CUSTOMER: Customer,
    ImportTarget.ORDER: Order,
}


class SQLAlchemyImportStore:
    """
    ImportStore over the project database.

    Every call opens its own session, so batches may run on separate
    threads. Each insert_batch is one transaction: all rows or none.
    Query timeouts are governed by the engine configuration; the per-call
    ``timeout`` argument is accepted for contract compatibility.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def exists(
        self,
        keys: Iterable[str],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> dict[str, bool]:
        model = _MODELS[ImportTarget(target)]
        key_list = list(dict.fromkeys(keys))
        found: set[str] = set()

        try:
            with self._session_factory() as session:
                for start in range(0, len(key_list), _LOOKUP_CHUNK_SIZE):
                    chunk = key_list[start : start + _LOOKUP_CHUNK_SIZE]
                    stmt = select(model.dedupe_key).where(model.dedupe_key.in_(chunk))
                    found.update(session.scalars(stmt).all())
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailableError("Database is unavailable.") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Existence check failed: {exc}") from exc

        return {key: key in found for key in key_list}

    def insert_batch(
        self,
        records: Sequence[tuple[str, TargetRecord]],
        *,
        target: ImportTarget,
        timeout: float | None = None,
    ) -> list[InsertOutcome]:
        if not records:
            return []

        model = _MODELS[ImportTarget(target)]
        payloads: list[dict[str, Any]] = [
            {"dedupe_key": key, **asdict(record)} for key, record in records
        ]

        try:
            with self._session_factory() as session:
                with session.begin():
                    session.execute(insert(model), payloads)
        except IntegrityError as exc:
            raise StoreError(f"Batch rejected by database constraint: {exc.orig}") from exc
        except DataError as exc:
            raise StoreError(f"Batch rejected by database: {exc.orig}") from exc
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailableError("Database is unavailable.") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Batch write failed: {exc}") from exc

        return [InsertOutcome(ok=True) for _ in payloads]
