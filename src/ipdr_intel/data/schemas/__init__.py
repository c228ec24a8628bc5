"""Data schemas - canonical Pydantic definitions."""

from ipdr_intel.data.schemas.detail_record import (
    PROVENANCE_FIELDS,
    GeoPoint,
    RawDetailRecord,
    DetailRecord,
)
from ipdr_intel.data.schemas.anomaly_event import AnomalyEvent

__all__ = [
    "PROVENANCE_FIELDS",
    "GeoPoint",
    "RawDetailRecord",
    "DetailRecord",
    "AnomalyEvent",
]
