"""
app/domain/errors.py

Pipeline-level exceptions that cross component boundaries.
"""

from __future__ import annotations


class FormatError(ValueError):
    """
    Raised when the uploaded file cannot be read as the declared format.
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.reason, "message": str(self)}


class CancellationError(RuntimeError):
    """
    Raised inside a running import when the caller has cancelled it.
    """
