"""Aggregator - read-only analytical queries over records and events.

Every query:
  - takes a TimeWindow (default: trailing config.default_window_days)
  - returns a typed, zero-valued result when nothing matches
  - runs on a worker thread and raises QueryTimeoutError if it does not
    finish within the timeout; no partial result is ever returned
"""

import logging
from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, TypeVar

import numpy as np

from ipdr_intel.analytics.formatting import format_data_volume
from ipdr_intel.analytics.schemas import (
    AnomalyAnalytics,
    CellCluster,
    CommunicatorStats,
    DailyCount,
    DashboardSummary,
    GeoClusterResult,
    ReasonBreakdown,
    RecentActivity,
    SubjectAnomalyStats,
    TrendBucket,
)
from ipdr_intel.common.config import Config
from ipdr_intel.common.constants import AnalyticsConstants
from ipdr_intel.common.exceptions import InvalidQueryError, QueryTimeoutError
from ipdr_intel.core.types import AnomalyStatus, TrendGranularity
from ipdr_intel.data.schemas import AnomalyEvent, DetailRecord
from ipdr_intel.storage.cases import CaseStore
from ipdr_intel.storage.query import (
    EventQuery,
    GeoBounds,
    RecordQuery,
    RecordSortField,
    TimeWindow,
    as_utc,
)
from ipdr_intel.storage.store import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

OPEN_STATUSES = [s for s in AnomalyStatus if s != AnomalyStatus.RESOLVED]


def _mean(values: List[float]) -> float:
    if not values:
        return 0.0
    return round(float(np.mean(values)), 4)


def _total(values: List[int]) -> int:
    if not values:
        return 0
    return int(np.sum(np.asarray(values, dtype=np.int64)))


class Aggregator:
    """Dashboard, trend, ranking, geography and anomaly analytics."""

    def __init__(
        self,
        store: RecordStore,
        case_store: Optional[CaseStore] = None,
        config: Optional[Config] = None,
    ):
        """Initialize Aggregator.

        Args:
            store: Record store holding records and anomaly events
            case_store: Source of the active-case figure; 0 when omitted
            config: Window, timezone, caps and timeout settings
        """
        self.store = store
        self.case_store = case_store
        self.config = config or Config()

    # ========== PLUMBING ==========

    def _window(self, window: Optional[TimeWindow]) -> TimeWindow:
        return window or TimeWindow.trailing(self.config.default_window_days)

    def _run(self, query_name: str, fn: Callable[[], T], timeout: Optional[float]) -> T:
        """Run fn on a worker thread, bounded by timeout seconds."""
        timeout = self.config.query_timeout_seconds if timeout is None else timeout
        if timeout <= 0:
            raise InvalidQueryError("timeout must be positive", details={"timeout": timeout})

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"ipdr-{query_name}")
        try:
            future = executor.submit(fn)
            try:
                return future.result(timeout=timeout)
            except FutureTimeoutError:
                future.cancel()
                logger.warning(f"Query {query_name} exceeded {timeout}s timeout")
                raise QueryTimeoutError(
                    f"Query {query_name} timed out after {timeout}s",
                    query_name=query_name,
                    details={"timeout_seconds": timeout},
                )
        finally:
            # Do not block on a query that is still running
            executor.shutdown(wait=False)

    def _local(self, moment: datetime) -> datetime:
        """Timestamp in the configured zone; naive values are already local."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.config.tzinfo)
        return moment.astimezone(self.config.tzinfo)

    def _fixed_offset(self, moment: datetime) -> datetime:
        """Local time with its UTC offset pinned, so the repeated DST hour stays distinct."""
        local = moment.astimezone(self.config.tzinfo)
        return local.replace(tzinfo=timezone(local.utcoffset()))

    def bucket_start(self, moment: datetime, granularity: TrendGranularity) -> datetime:
        """Start of the bucket containing moment, in the configured zone.

        Hourly starts keep fold, so the repeated hour of a DST fall-back
        is a separate bucket.
        """
        local = self._local(moment)
        if granularity == TrendGranularity.HOURLY:
            return local.replace(minute=0, second=0, microsecond=0)
        day = local.replace(hour=0, minute=0, second=0, microsecond=0, fold=0)
        if granularity == TrendGranularity.DAILY:
            return day
        if granularity == TrendGranularity.WEEKLY:
            # ISO weeks start on Monday
            return day - timedelta(days=day.weekday())
        return day.replace(day=1)

    # ========== DASHBOARD ==========

    def dashboard_summary(
        self,
        window: Optional[TimeWindow] = None,
        recent_limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> DashboardSummary:
        """Headline counts, volume, anomaly/case figures and recent activity."""
        window = self._window(window)
        if recent_limit is None:
            recent_limit = self.config.recent_activity_limit
        if recent_limit < 1:
            raise InvalidQueryError("recent_limit must be positive", details={"recent_limit": recent_limit})
        return self._run(
            "dashboard_summary",
            lambda: self._dashboard_summary(window, recent_limit),
            timeout,
        )

    def _dashboard_summary(self, window: TimeWindow, recent_limit: int) -> DashboardSummary:
        query = RecordQuery(window=window)
        records = self.store.find_records(query)

        addresses = set()
        for field in ("private_address", "public_address", "dest_address"):
            addresses |= self.store.distinct_values(field, query)

        total_bytes = _total([r.total_bytes for r in records])
        breakdown = Counter(r.access_type.value for r in records)

        recent = self.store.find_records(query.model_copy(update={
            "sort_by": RecordSortField.CREATED_AT,
            "descending": True,
            "limit": recent_limit,
        }))

        open_anomalies = len(self.store.find_events(
            EventQuery(window=window, statuses=OPEN_STATUSES)
        ))
        active_cases = self.case_store.count_active_cases() if self.case_store else 0

        return DashboardSummary(
            total_records=self.store.count_records(query),
            unique_subscribers=len(self.store.distinct_values("subscriber_number", query)),
            unique_addresses=len(addresses),
            total_bytes=total_bytes,
            total_data_volume=format_data_volume(total_bytes),
            open_anomalies=open_anomalies,
            active_cases=active_cases,
            access_type_breakdown=dict(sorted(breakdown.items())),
            recent_activity=[
                RecentActivity(
                    record_id=r.record_id,
                    subscriber_number=r.subscriber_number,
                    timestamp=r.start_time,
                    access_type=r.access_type,
                    suspicious=r.suspicious,
                )
                for r in recent
            ],
            window_days=window.days,
        )

    # ========== TRENDS ==========

    def activity_trend(
        self,
        granularity: TrendGranularity = TrendGranularity.DAILY,
        window: Optional[TimeWindow] = None,
        timeout: Optional[float] = None,
    ) -> List[TrendBucket]:
        """Record count, volume and suspicious count per time bucket."""
        granularity = TrendGranularity(granularity)
        window = self._window(window)
        return self._run(
            "activity_trend",
            lambda: self._activity_trend(granularity, window),
            timeout,
        )

    def _activity_trend(
        self, granularity: TrendGranularity, window: TimeWindow
    ) -> List[TrendBucket]:
        # Keyed by UTC instant; same-zone aware datetimes compare by wall clock
        buckets: Dict[datetime, List[DetailRecord]] = defaultdict(list)
        for record in self.store.find_records(RecordQuery(window=window)):
            start = self.bucket_start(record.start_time, granularity)
            buckets[as_utc(start)].append(record)

        return [
            TrendBucket(
                bucket_start=self._fixed_offset(start),
                granularity=granularity,
                record_count=len(group),
                total_bytes=_total([r.total_bytes for r in group]),
                suspicious_count=sum(1 for r in group if r.suspicious),
            )
            for start, group in sorted(buckets.items())
        ]

    # ========== RANKINGS ==========

    def top_communicators(
        self,
        limit: int = AnalyticsConstants.TOP_COMMUNICATORS_LIMIT,
        window: Optional[TimeWindow] = None,
        timeout: Optional[float] = None,
    ) -> List[CommunicatorStats]:
        """Subjects ranked by risk_score desc, then total_sessions desc."""
        if limit < 1:
            raise InvalidQueryError("limit must be positive", details={"limit": limit})
        window = self._window(window)
        return self._run(
            "top_communicators",
            lambda: self._top_communicators(limit, window),
            timeout,
        )

    def _top_communicators(self, limit: int, window: TimeWindow) -> List[CommunicatorStats]:
        groups: Dict[str, List[DetailRecord]] = defaultdict(list)
        for record in self.store.find_records(RecordQuery(window=window)):
            groups[record.subscriber_number].append(record)

        stats = []
        for subscriber, group in groups.items():
            sessions = len(group)
            suspicious = sum(1 for r in group if r.suspicious)
            starts = [r.start_time for r in group]
            risk = (
                suspicious * AnalyticsConstants.COMMUNICATOR_SUSPICIOUS_WEIGHT
                + sessions / AnalyticsConstants.COMMUNICATOR_SESSION_DIVISOR
            )
            stats.append(CommunicatorStats(
                subscriber_number=subscriber,
                total_sessions=sessions,
                total_bytes=_total([r.total_bytes for r in group]),
                suspicious_count=suspicious,
                unique_destinations=len({r.dest_address for r in group}),
                access_types=sorted({r.access_type for r in group}, key=lambda a: a.value),
                first_seen=min(starts, key=as_utc),
                last_seen=max(starts, key=as_utc),
                risk_score=round(risk, 4),
            ))

        stats.sort(key=lambda s: (-s.risk_score, -s.total_sessions, s.subscriber_number))
        return stats[:limit]

    # ========== GEOGRAPHY ==========

    def geographic_clusters(
        self,
        window: Optional[TimeWindow] = None,
        bounds: Optional[GeoBounds] = None,
        timeout: Optional[float] = None,
    ) -> GeoClusterResult:
        """Records grouped by cell, reading at most config.geo_record_cap records."""
        window = self._window(window)
        return self._run(
            "geographic_clusters",
            lambda: self._geographic_clusters(window, bounds),
            timeout,
        )

    def _geographic_clusters(
        self, window: TimeWindow, bounds: Optional[GeoBounds]
    ) -> GeoClusterResult:
        cap = self.config.geo_record_cap
        # One extra record tells us whether the cap was hit
        records = self.store.find_records(RecordQuery(
            window=window,
            bounds=bounds,
            sort_by=RecordSortField.START_TIME,
            descending=True,
            limit=cap + 1,
        ))
        truncated = len(records) > cap
        records = records[:cap]

        clusters: Dict[str, CellCluster] = {}
        for record in records:
            cluster = clusters.get(record.cell_id)
            if cluster is None:
                # Position of the first record seen for the cell
                cluster = CellCluster(
                    cell_id=record.cell_id,
                    latitude=record.latitude,
                    longitude=record.longitude,
                    count=0,
                )
                clusters[record.cell_id] = cluster
            cluster.count += 1
            if record.suspicious:
                cluster.suspicious_count += 1
            access = record.access_type.value
            cluster.access_types[access] = cluster.access_types.get(access, 0) + 1

        if truncated:
            logger.info(f"Geographic clustering capped at {cap} records")

        return GeoClusterResult(
            clusters=sorted(clusters.values(), key=lambda c: (-c.count, c.cell_id)),
            total_records=len(records),
            truncated=truncated,
            bounds=bounds,
        )

    # ========== ANOMALIES ==========

    def anomaly_analytics(
        self,
        window: Optional[TimeWindow] = None,
        timeout: Optional[float] = None,
    ) -> AnomalyAnalytics:
        """Event breakdowns by reason, severity and status, plus trends and top subjects."""
        window = self._window(window)
        return self._run(
            "anomaly_analytics",
            lambda: self._anomaly_analytics(window),
            timeout,
        )

    def _anomaly_analytics(self, window: TimeWindow) -> AnomalyAnalytics:
        events = self.store.find_events(EventQuery(window=window))

        by_reason: Dict[str, List[AnomalyEvent]] = defaultdict(list)
        by_subject: Dict[str, List[AnomalyEvent]] = defaultdict(list)
        daily: Counter = Counter()
        for event in events:
            by_reason[event.reason_code.value].append(event)
            by_subject[event.subscriber_number].append(event)
            daily[self._local(event.detected_at).date()] += 1

        reasons = [
            ReasonBreakdown(
                reason_code=group[0].reason_code,
                count=len(group),
                mean_risk_score=_mean([e.risk_score for e in group]),
            )
            for group in by_reason.values()
        ]
        reasons.sort(key=lambda r: (-r.count, r.reason_code.value))

        subjects = [
            SubjectAnomalyStats(
                subscriber_number=subscriber,
                event_count=len(group),
                mean_risk_score=_mean([e.risk_score for e in group]),
                reason_codes=sorted({e.reason_code for e in group}, key=lambda r: r.value),
                max_severity=max((e.severity for e in group), key=lambda s: s.rank),
            )
            for subscriber, group in by_subject.items()
        ]
        subjects.sort(key=lambda s: (-s.event_count, -s.mean_risk_score, s.subscriber_number))

        return AnomalyAnalytics(
            total_events=len(events),
            by_reason=reasons,
            by_severity=dict(sorted(Counter(e.severity.value for e in events).items())),
            by_status=dict(sorted(Counter(e.status.value for e in events).items())),
            daily_trend=[DailyCount(day=day, count=count) for day, count in sorted(daily.items())],
            top_subjects=subjects[: AnalyticsConstants.TOP_ANOMALY_SUBJECTS],
        )
