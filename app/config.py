"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_STORE_BACKENDS = {"database", "http"}
_ALLOWED_DATE_LOCALES = {"dmy", "mdy"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    """
    Read a lowercase string restricted to ``allowed``.

    Unlike the other helpers this one raises, since silently falling back
    would change which store rows are written to or how dates are read.
    """

    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name}='{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the validate/execute import pipeline.
    """

    batch_size: int = 100
    preview_limit: int = 50
    max_issues: int = 500
    max_workers: int = 4
    date_locale: str = "dmy"
    max_upload_bytes: int = 10 * 1024 * 1024
    store_backend: str = "database"
    log_validation_issues: bool = True


@dataclass(frozen=True)
class StoreHTTPSettings:
    """
    Connection settings for the CRM backend REST store.

    Passed explicitly to the store client; the client never reads env itself.
    """

    base_url: str = "http://localhost:3001/api"
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    api_token: str | None = None


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        batch_size=max(1, _get_int_env("IMPORT_BATCH_SIZE", 100)),
        preview_limit=max(0, _get_int_env("IMPORT_PREVIEW_LIMIT", 50)),
        max_issues=max(1, _get_int_env("IMPORT_MAX_ISSUES", 500)),
        max_workers=max(1, _get_int_env("IMPORT_MAX_WORKERS", 4)),
        date_locale=_get_choice_env("IMPORT_DATE_LOCALE", "dmy", _ALLOWED_DATE_LOCALES),
        max_upload_bytes=max(1, _get_int_env("IMPORT_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
        store_backend=_get_choice_env("IMPORT_STORE_BACKEND", "database", _ALLOWED_STORE_BACKENDS),
        log_validation_issues=_get_bool_env("IMPORT_LOG_VALIDATION_ISSUES", True),
    )


@lru_cache(maxsize=1)
def get_store_http_settings() -> StoreHTTPSettings:
    """
    Return REST store connection settings from environment variables.
    """

    _load_env_once()
    token = (os.getenv("STORE_API_TOKEN") or "").strip()
    return StoreHTTPSettings(
        base_url=_get_str_env("STORE_API_BASE_URL", "http://localhost:3001/api").rstrip("/"),
        timeout_seconds=max(1.0, _get_float_env("STORE_API_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("STORE_API_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.1, _get_float_env("STORE_API_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("STORE_API_BACKOFF_MULTIPLIER", 2.0)),
        api_token=token or None,
    )
