"""Detection - normalization, reason taxonomy and rule classification."""

from ipdr_intel.detection.normalizer import derive_fields, localize, normalize_record, validate_raw
from ipdr_intel.detection.taxonomy import (
    REASON_TAXONOMY,
    ReasonSpec,
    describe,
    severity_for,
    validate_taxonomy,
)
from ipdr_intel.detection.schema import Classification, ReasonDetection
from ipdr_intel.detection.classifier import RecordClassifier, WindowedDetector, apply

__all__ = [
    "normalize_record",
    "validate_raw",
    "derive_fields",
    "localize",
    "REASON_TAXONOMY",
    "ReasonSpec",
    "describe",
    "severity_for",
    "validate_taxonomy",
    "Classification",
    "ReasonDetection",
    "RecordClassifier",
    "WindowedDetector",
    "apply",
]
