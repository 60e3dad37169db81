"""
Structured logging helpers for import workflows.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


@contextmanager
def logged_operation(
    logger: logging.Logger,
    event: str,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Log ``<event>_started`` / ``_finished`` / ``_failed`` around a block.

    The yielded dict is merged into the finished line, so the block can
    attach its own summary counts.
    """

    started_at = time.perf_counter()
    summary: dict[str, Any] = {}
    log_event(logger, logging.INFO, f"{event}_started", **fields)
    try:
        yield summary
    except Exception as exc:
        log_event(
            logger,
            logging.ERROR,
            f"{event}_failed",
            error_type=type(exc).__name__,
            error=str(exc),
            elapsed_ms=_elapsed_ms(started_at),
            **fields,
        )
        raise
    log_event(
        logger,
        logging.INFO,
        f"{event}_finished",
        elapsed_ms=_elapsed_ms(started_at),
        **fields,
        **summary,
    )


def _elapsed_ms(started_at: float) -> float:
    return round((time.perf_counter() - started_at) * 1000, 1)
