"""
app/services/cancellation.py

Caller-owned cancellation and deadline for one import run.
"""

from __future__ import annotations

import threading
import time

from app.domain.errors import CancellationError


class CancellationToken:
    """
    Thread-safe flag plus optional deadline, shared by all batch workers.
    """

    def __init__(self, *, timeout_seconds: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """
        Seconds left before the deadline, or None when there is no deadline.
        """

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise CancellationError("Import was cancelled.")
