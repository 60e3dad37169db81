from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import get_import_settings


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - IMPORT_STORE_BACKEND and IMPORT_DATE_LOCALE must hold allowed values.
    - A database URL is required only for the database store backend.
    - STORE_API_BASE_URL must be an http(s) URL for the http store backend.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    try:
        settings = get_import_settings()
    except RuntimeError as exc:
        errors.append(str(exc))
        settings = None

    # --- Database URL ---------------------------------------------------
    if settings is not None and settings.store_backend == "database":
        database_url = os.getenv("DATABASE_URL", "").strip()
        cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
        if not database_url and not cloud_database_url:
            errors.append(
                "No database URL configured. Set DATABASE_URL or CLOUD_DATABASE_URL, "
                "or use IMPORT_STORE_BACKEND=http."
            )

    # --- REST store -----------------------------------------------------
    if settings is not None and settings.store_backend == "http":
        base_url = os.getenv("STORE_API_BASE_URL", "").strip()
        if base_url and not base_url.startswith(("http://", "https://")):
            errors.append(
                f"STORE_API_BASE_URL='{base_url}' must start with http:// or https://."
            )

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every import table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers the import models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d import table(s) are absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot when the database store is used."""
    if get_import_settings().store_backend == "database":
        _check_db()
        logging.getLogger(__name__).info("Database connectivity confirmed")
        _check_schema()
        logging.getLogger(__name__).info("Database schema validated")
    else:
        logging.getLogger(__name__).info("Using REST import store; database checks skipped")
    try:
        yield
    finally:
        from db.session import dispose_engine

        dispose_engine()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="CRM Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import import_router

    application.include_router(import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {
            "status": "ok",
            "storeBackend": get_import_settings().store_backend,
        }

    return application


app = create_app()
