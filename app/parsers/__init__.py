"""
app/parsers package marker.
"""

from app.parsers.row_parser import ParsedFile, normalize_format, parse_rows, write_rows

__all__ = [
    "ParsedFile",
    "normalize_format",
    "parse_rows",
    "write_rows",
]
