"""
app/mappers/header_mapper.py

Resolves file headers to the field names of an import target schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from app.validators.target_schemas import TargetSchema


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class HeaderMapping:
    """
    Final resolved header-to-field mapping for one file.
    """

    header_to_field: dict[str, str]
    source_headers: tuple[str, ...]
    unmapped_headers: tuple[str, ...]

    @property
    def field_to_header(self) -> dict[str, str]:
        return {field: header for header, field in self.header_to_field.items()}


def resolve_headers(headers: Sequence[str], schema: TargetSchema) -> HeaderMapping:
    """
    Match each header to a schema field by exact normalized name, then alias.

    A field claimed by an earlier header is not reassigned; later headers
    that would map to it are left unmapped.
    """

    lookup: dict[str, str] = {}
    for spec in schema.fields:
        lookup.setdefault(normalize_header(spec.name), spec.name)
    for spec in schema.fields:
        for alias in spec.aliases:
            lookup.setdefault(normalize_header(alias), spec.name)

    header_to_field: dict[str, str] = {}
    claimed: set[str] = set()
    unmapped: list[str] = []

    for header in headers:
        field_name = lookup.get(normalize_header(header))
        if field_name is None or field_name in claimed:
            unmapped.append(header)
            continue
        claimed.add(field_name)
        header_to_field[header] = field_name

    return HeaderMapping(
        header_to_field=header_to_field,
        source_headers=tuple(headers),
        unmapped_headers=tuple(unmapped),
    )
