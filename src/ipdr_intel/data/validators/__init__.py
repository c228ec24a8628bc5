"""Data validators package."""

from .schema_validator import (
    validate_row,
    validate_rows,
    ValidationResult,
)

__all__ = [
    "validate_row",
    "validate_rows",
    "ValidationResult",
]
