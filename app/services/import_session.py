"""
app/services/import_session.py

Entry points for the import pipeline: validate, execute and template.

Both validate and execute build their candidates through
``open_candidates`` so they agree on which rows are importable. Execute
never reuses an earlier validation result; it parses the file again.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import ImportSettings, get_import_settings, get_store_http_settings
from app.domain.import_records import ImportOptions, ImportResult, ImportTarget, ValidationResult
from app.logging_utils import logged_operation
from app.parsers.row_parser import FileSource, parse_rows, write_rows
from app.repositories.import_store import ImportStore
from app.services.batch_committer import BatchCommitter
from app.services.cancellation import CancellationToken
from app.services.validation_session import ValidationSession, open_candidates
from app.validators.target_schemas import get_schema

logger = logging.getLogger(__name__)


class ImportSession:
    """
    Orchestrates one validate or execute call against an ImportStore.
    """

    def __init__(
        self,
        *,
        store: ImportStore,
        settings: ImportSettings | None = None,
        validation_session: ValidationSession | None = None,
        committer: BatchCommitter | None = None,
    ) -> None:
        self._settings = settings or ImportSettings()
        self._store = store
        self._validation_session = validation_session or ValidationSession(
            preview_limit=self._settings.preview_limit,
            max_issues=self._settings.max_issues,
            date_locale=self._settings.date_locale,
            log_validation_issues=self._settings.log_validation_issues,
        )
        self._committer = committer or BatchCommitter(
            store=store,
            max_workers=self._settings.max_workers,
        )

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    def validate(
        self,
        source: FileSource,
        *,
        target: ImportTarget,
        declared_format: str | None = "csv",
    ) -> ValidationResult:
        """
        Side-effect-free validation of an uploaded file.
        """

        return self._validation_session.run_validation(
            source,
            target=ImportTarget(target),
            declared_format=declared_format,
        )

    def execute(
        self,
        source: FileSource,
        *,
        target: ImportTarget,
        options: ImportOptions | None = None,
        declared_format: str | None = "csv",
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """
        Parse, validate and commit a file.

        The whole file is scanned for format errors first, so a FormatError
        anywhere in the file is raised before the first batch reaches the
        store. Row-level and batch-level failures are reported in the result.
        """

        target = ImportTarget(target)
        options = options or ImportOptions(batch_size=self._settings.batch_size)
        source = _rewindable(source)

        with logged_operation(
            logger,
            "import_execute",
            target=target.value,
            batch_size=options.batch_size,
            skip_duplicates=options.skip_duplicates,
        ) as summary:
            self._scan_format(source, declared_format)
            stream = open_candidates(
                source,
                target=target,
                declared_format=declared_format,
                date_locale=self._settings.date_locale,
            )
            result = self._committer.commit(
                stream.candidates,
                target=target,
                options=options,
                cancel_token=cancel_token,
            )
            summary.update(
                success=result.success,
                total_processed=result.total_processed,
                inserted=result.successful_inserts,
                failed=result.failed_inserts,
                skipped=result.duplicates_skipped,
                cancelled=result.cancelled,
            )
        return result

    def template(
        self,
        target: ImportTarget,
        *,
        include_sample: bool = False,
        declared_format: str | None = "csv",
    ) -> bytes:
        """
        Blank import file with the target's header row, optionally one sample row.
        """

        schema = get_schema(target)
        rows = [[spec.sample for spec in schema.fields]] if include_sample else []
        return write_rows(schema.field_names, rows, declared_format)

    @staticmethod
    def _scan_format(source: FileSource, declared_format: str | None) -> None:
        parsed = parse_rows(source, declared_format)
        for _ in parsed.rows:
            pass
        if not isinstance(source, (bytes, bytearray)):
            source.seek(0)


def _rewindable(source: FileSource) -> FileSource:
    if isinstance(source, (bytes, bytearray)):
        return source
    if source.seekable():
        source.seek(0)
        return source
    return source.read()


def get_import_store() -> ImportStore:
    """
    Build the store selected by IMPORT_STORE_BACKEND.
    """

    settings = get_import_settings()
    if settings.store_backend == "http":
        from app.connectors.store_client import RESTImportStoreClient

        return RESTImportStoreClient(settings=get_store_http_settings())

    from app.repositories.sqlalchemy_import_store import SQLAlchemyImportStore
    from db.session import SessionLocal

    return SQLAlchemyImportStore(SessionLocal)


@lru_cache(maxsize=1)
def get_import_session() -> ImportSession:
    """
    Return the shared import session wired from environment settings.
    """

    return ImportSession(store=get_import_store(), settings=get_import_settings())
