"""Schema validation utilities for IPDR Intel.

Dry-run validation of raw rows before an upload is committed.
Nothing is persisted.
"""

from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ipdr_intel.common.exceptions import RecordValidationError
from ipdr_intel.detection.normalizer import normalize_record


class ValidationResult:
    """Result of validation operation."""

    def __init__(self):
        self.valid: bool = True
        self.errors: List[Dict[str, Any]] = []
        self.validated_count: int = 0

    def add_error(self, index: int, error: str, fields: Optional[List[Dict[str, Any]]] = None):
        """Add validation error."""
        self.valid = False
        self.errors.append({
            "row_index": index,
            "error": error,
            "fields": fields or [],
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "validated_count": self.validated_count,
            "error_count": len(self.errors),
            "errors": self.errors,
        }


def validate_row(
    row: Mapping[str, Any],
    zone: Optional[tzinfo] = None,
) -> Optional[RecordValidationError]:
    """Validate a single raw row.

    Args:
        row: Raw row mapping
        zone: Zone of naive timestamps, as used at ingestion

    Returns:
        None if valid, the validation error otherwise
    """
    try:
        normalize_record(row, zone)
        return None
    except RecordValidationError as e:
        return e


def validate_rows(
    rows: Iterable[Mapping[str, Any]],
    zone: Optional[tzinfo] = None,
) -> ValidationResult:
    """Validate a batch of raw rows (0-based row indexes)."""
    result = ValidationResult()
    for i, row in enumerate(rows):
        error = validate_row(row, zone)
        if error:
            result.add_error(i, error.message, error.details.get("errors"))
        else:
            result.validated_count += 1
    return result
