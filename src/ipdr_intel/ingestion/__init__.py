"""Ingestion - batch pipeline and raw-row sources."""

from ipdr_intel.ingestion.result import IngestionResult, RowFailure
from ipdr_intel.ingestion.pipeline import IngestionPipeline
from ipdr_intel.ingestion.csv_source import read_csv_bytes, read_csv_rows

__all__ = [
    "IngestionResult",
    "RowFailure",
    "IngestionPipeline",
    "read_csv_bytes",
    "read_csv_rows",
]
