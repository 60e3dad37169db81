"""
app/api/routers package marker.
"""

from app.api.routers.import_router import router as import_router

__all__ = [
    "import_router",
]
