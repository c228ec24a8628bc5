"""Analytics Output Schemas.

One typed result per query. All results are computed on demand and
never persisted. Every model has a well-formed empty value.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ipdr_intel.core.types import (
    AccessType,
    ReasonCode,
    Severity,
    StrengthTier,
    TrendGranularity,
)
from ipdr_intel.data.schemas import DetailRecord
from ipdr_intel.storage.query import GeoBounds, TimeWindow


# ========== RELATIONSHIPS ==========

class RelationshipEdge(BaseModel):
    """Aggregated contact between a subject and one counterpart address."""

    subject: str = Field(..., description="A-party subscriber number")
    counterpart_address: str = Field(..., description="Destination address")
    b_parties: List[str] = Field(
        default_factory=list,
        description="Other subscribers seen at the same address (sorted, capped)"
    )
    frequency: int = Field(..., ge=1, description="Number of sessions")
    total_duration_ms: int = Field(..., ge=0)
    total_bytes: int = Field(..., ge=0)
    first_contact: datetime
    last_contact: datetime
    strength_tier: StrengthTier
    suspicious_observed: bool = False
    depth: int = Field(default=1, ge=1, description="Hop at which the edge was found")

    model_config = {
        "json_schema_extra": {
            "example": {
                "subject": "919876543210",
                "counterpart_address": "198.51.100.20",
                "b_parties": ["919812345678"],
                "frequency": 12,
                "total_duration_ms": 5400000,
                "total_bytes": 73400320,
                "first_contact": "2026-01-02T09:12:00Z",
                "last_contact": "2026-01-25T23:10:00Z",
                "strength_tier": "HIGH",
                "suspicious_observed": True,
                "depth": 1,
            }
        }
    }


class RelationshipGraph(BaseModel):
    """Relationship expansion around one subject."""

    center: str
    depth: int = Field(default=1, ge=1)
    window: Optional[TimeWindow] = None
    edges: List[RelationshipEdge] = Field(default_factory=list)
    nodes: List[str] = Field(
        default_factory=list,
        description="Subjects reached, in breadth-first order"
    )


# ========== DASHBOARD ==========

class RecentActivity(BaseModel):
    record_id: Optional[str] = None
    subscriber_number: str
    timestamp: datetime = Field(..., description="Session start time")
    access_type: AccessType
    suspicious: bool


class DashboardSummary(BaseModel):
    """Headline figures for the investigation dashboard."""

    total_records: int = 0
    unique_subscribers: int = 0
    unique_addresses: int = Field(default=0, description="Union of private, public and destination")
    total_bytes: int = 0
    total_data_volume: str = "0 B"
    open_anomalies: int = Field(default=0, description="Events in window with status != RESOLVED")
    active_cases: int = 0
    access_type_breakdown: Dict[str, int] = Field(default_factory=dict)
    recent_activity: List[RecentActivity] = Field(default_factory=list)
    window_days: int = 0


# ========== TRENDS & RANKINGS ==========

class TrendBucket(BaseModel):
    bucket_start: datetime
    granularity: TrendGranularity
    record_count: int = 0
    total_bytes: int = 0
    suspicious_count: int = 0


class CommunicatorStats(BaseModel):
    """Per-subject activity with a simple ranking score."""

    subscriber_number: str
    total_sessions: int
    total_bytes: int
    suspicious_count: int
    unique_destinations: int
    access_types: List[AccessType] = Field(default_factory=list)
    first_seen: datetime
    last_seen: datetime
    risk_score: float = Field(..., description="suspicious_count * 10 + total_sessions / 100")


# ========== GEOGRAPHY ==========

class CellCluster(BaseModel):
    cell_id: str
    latitude: float
    longitude: float
    count: int
    suspicious_count: int = 0
    access_types: Dict[str, int] = Field(default_factory=dict)


class GeoClusterResult(BaseModel):
    clusters: List[CellCluster] = Field(default_factory=list)
    total_records: int = Field(default=0, description="Records clustered (after the cap)")
    truncated: bool = Field(default=False, description="True when the record cap was hit")
    bounds: Optional[GeoBounds] = None


# ========== ANOMALY ANALYTICS ==========

class ReasonBreakdown(BaseModel):
    reason_code: ReasonCode
    count: int
    mean_risk_score: float


class DailyCount(BaseModel):
    day: date
    count: int


class SubjectAnomalyStats(BaseModel):
    subscriber_number: str
    event_count: int
    mean_risk_score: float
    reason_codes: List[ReasonCode] = Field(default_factory=list)
    max_severity: Severity


class AnomalyAnalytics(BaseModel):
    total_events: int = 0
    by_reason: List[ReasonBreakdown] = Field(default_factory=list)
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)
    daily_trend: List[DailyCount] = Field(default_factory=list)
    top_subjects: List[SubjectAnomalyStats] = Field(default_factory=list)


# ========== SEARCH ==========

class SearchCriteria(BaseModel):
    """Advanced record search filters. Unset filters match everything."""

    subscriber_numbers: Optional[List[str]] = None
    addresses: Optional[List[str]] = Field(default=None, description="Any endpoint role")
    device_ids: Optional[List[str]] = None
    window: Optional[TimeWindow] = None
    access_types: Optional[List[AccessType]] = None
    min_bytes: Optional[int] = Field(default=None, ge=0)
    max_bytes: Optional[int] = Field(default=None, ge=0)
    min_duration_ms: Optional[int] = Field(default=None, ge=0)
    max_duration_ms: Optional[int] = Field(default=None, ge=0)
    suspicious_only: bool = False
    limit: Optional[int] = Field(default=None, ge=1)


class EntityHits(BaseModel):
    entity_type: str
    record_ids: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list, description="Matched distinct values")
    hit_count: int = 0
    total_count: int = 0


class GlobalSearchResult(BaseModel):
    query: str
    results: Dict[str, EntityHits] = Field(default_factory=dict)


class Suggestion(BaseModel):
    value: str
    entity_type: str
    label: str


class RecordPage(BaseModel):
    """One page of records, newest first."""

    records: List[DetailRecord] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=50, ge=1)
    total: int = Field(default=0, description="Matching records across all pages")
    pages: int = 0


class SubjectRecords(BaseModel):
    """Records of one subject plus records of others sharing a destination."""

    subscriber_number: str
    page: RecordPage
    related_records: List[DetailRecord] = Field(
        default_factory=list,
        description="Other subjects' sessions to the same destinations, newest first",
    )
