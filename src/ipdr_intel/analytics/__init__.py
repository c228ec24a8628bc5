"""Analytics - relationships, aggregate queries and record search."""

from ipdr_intel.analytics.schemas import (
    AnomalyAnalytics,
    CellCluster,
    CommunicatorStats,
    DailyCount,
    DashboardSummary,
    EntityHits,
    GeoClusterResult,
    GlobalSearchResult,
    ReasonBreakdown,
    RecentActivity,
    RecordPage,
    RelationshipEdge,
    RelationshipGraph,
    SearchCriteria,
    SubjectAnomalyStats,
    SubjectRecords,
    Suggestion,
    TrendBucket,
)
from ipdr_intel.analytics.formatting import format_data_size, format_data_volume, format_duration
from ipdr_intel.analytics.relationships import RelationshipBuilder, strength_tier
from ipdr_intel.analytics.aggregator import Aggregator
from ipdr_intel.analytics.search import RecordSearch

__all__ = [
    "AnomalyAnalytics",
    "CellCluster",
    "CommunicatorStats",
    "DailyCount",
    "DashboardSummary",
    "EntityHits",
    "GeoClusterResult",
    "GlobalSearchResult",
    "ReasonBreakdown",
    "RecentActivity",
    "RecordPage",
    "RelationshipEdge",
    "RelationshipGraph",
    "SearchCriteria",
    "SubjectAnomalyStats",
    "SubjectRecords",
    "Suggestion",
    "TrendBucket",
    "format_data_size",
    "format_data_volume",
    "format_duration",
    "RelationshipBuilder",
    "strength_tier",
    "Aggregator",
    "RecordSearch",
]
