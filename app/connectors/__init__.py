"""
app/connectors package marker.
"""

from app.connectors.store_client import RESTImportStoreClient

__all__ = [
    "RESTImportStoreClient",
]
