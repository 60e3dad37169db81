"""
app/repositories package marker.
"""

from app.repositories.import_store import (
    ImportStore,
    InsertOutcome,
    StoreError,
    StoreUnavailableError,
)
from app.repositories.sqlalchemy_import_store import SQLAlchemyImportStore

__all__ = [
    "ImportStore",
    "InsertOutcome",
    "SQLAlchemyImportStore",
    "StoreError",
    "StoreUnavailableError",
]
