"""
app/validators package marker.
"""

from app.validators.row_validator import (
    BaseRowValidator,
    CustomerRowValidator,
    OrderRowValidator,
    build_row_validator,
)
from app.validators.target_schemas import SCHEMAS, FieldSpec, TargetSchema, duplicate_key, get_schema

__all__ = [
    "BaseRowValidator",
    "CustomerRowValidator",
    "FieldSpec",
    "OrderRowValidator",
    "SCHEMAS",
    "TargetSchema",
    "build_row_validator",
    "duplicate_key",
    "get_schema",
]
