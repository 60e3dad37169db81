"""
app/services package marker.
"""

from app.services.batch_committer import BatchCommitter, BatchOutcome
from app.services.cancellation import CancellationToken
from app.services.duplicate_resolver import DuplicateResolver, ResolveAction
from app.services.import_session import ImportSession, get_import_session, get_import_store
from app.services.validation_session import ValidationSession, open_candidates

__all__ = [
    "BatchCommitter",
    "BatchOutcome",
    "CancellationToken",
    "DuplicateResolver",
    "ResolveAction",
    "ImportSession",
    "get_import_session",
    "get_import_store",
    "ValidationSession",
    "open_candidates",
]
