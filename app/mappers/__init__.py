"""
app/mappers package marker.
"""

from app.mappers.header_mapper import HeaderMapping, normalize_header, resolve_headers

__all__ = [
    "HeaderMapping",
    "normalize_header",
    "resolve_headers",
]
