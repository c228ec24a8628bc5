"""Ingestion result types."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ipdr_intel.common.constants import IngestionConstants


@dataclass
class RowFailure:
    """One rejected row, keyed by its 0-based position in the batch."""
    row_index: int
    error_code: str
    error: str
    raw_row: Any = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "error_code": self.error_code,
            "error": self.error,
            "raw_row": self.raw_row,
            "details": self.details,
        }


@dataclass
class IngestionResult:
    """Batch ingestion summary.

    Every failure is kept; to_summary() bounds only the preview.
    """
    processed_count: int = 0
    created_count: int = 0
    failures: List[RowFailure] = field(default_factory=list)
    created_record_ids: List[str] = field(default_factory=list)
    event_ids: List[str] = field(default_factory=list)
    dropped_event_count: int = 0

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def failure_preview(
        self, limit: int = IngestionConstants.FAILURE_PREVIEW_LIMIT
    ) -> List[RowFailure]:
        return sorted(self.failures, key=lambda f: f.row_index)[:limit]

    def to_summary(self, preview_limit: Optional[int] = None) -> Dict[str, Any]:
        """Summary with explicit counts and a bounded failure preview."""
        if preview_limit is None:
            preview_limit = IngestionConstants.FAILURE_PREVIEW_LIMIT
        return {
            "processed": self.processed_count,
            "created": self.created_count,
            "errors": self.failure_count,
            "events": len(self.event_ids),
            "dropped_events": self.dropped_event_count,
            "created_record_ids": list(self.created_record_ids),
            "error_details": [f.to_dict() for f in self.failure_preview(preview_limit)],
        }
