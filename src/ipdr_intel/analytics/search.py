"""Record search - listing, advanced filters, global text search,
suggestions and export.
"""

import io
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ipdr_intel.analytics.formatting import format_data_size, format_duration
from ipdr_intel.analytics.schemas import (
    EntityHits,
    GlobalSearchResult,
    RecordPage,
    SearchCriteria,
    SubjectRecords,
    Suggestion,
)
from ipdr_intel.common.config import Config
from ipdr_intel.common.constants import SearchConstants
from ipdr_intel.common.exceptions import InvalidQueryError
from ipdr_intel.core.types import AccessType
from ipdr_intel.data.generators import CSV_COLUMNS, write_csv
from ipdr_intel.data.schemas import DetailRecord, RawDetailRecord
from ipdr_intel.storage.query import RecordQuery, TimeWindow
from ipdr_intel.storage.store import RecordStore

logger = logging.getLogger(__name__)

# entity type -> (record fields searched, RecordQuery filter for matched values)
ENTITY_FIELDS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "phone": (("subscriber_number",), "subscriber_numbers"),
    "ip": (("private_address", "public_address", "dest_address"), "any_addresses"),
    "imei": (("device_id",), "device_ids"),
    "imsi": (("subscriber_id",), "subscriber_ids"),
    "cell": (("cell_id",), "cell_ids"),
}

DEFAULT_ENTITY_TYPES = ("phone", "ip", "imei", "imsi")

# entity type -> (suggestion cap, label prefix)
SUGGESTION_TYPES = {
    "phone": (SearchConstants.PHONE_SUGGESTIONS, "Phone"),
    "ip": (SearchConstants.ADDRESS_SUGGESTIONS, "IP"),
    "cell": (SearchConstants.CELL_SUGGESTIONS, "Cell"),
}

EXPORT_FORMATS = ("csv", "json")

EXPORT_COLUMNS = (
    ["recordId"]
    + CSV_COLUMNS
    + ["durationMs", "duration", "totalBytes", "dataSize", "suspicious", "suspiciousReasons", "createdAt"]
)


def export_row(record: DetailRecord) -> Dict[str, Any]:
    """Flat, JSON-ready export row: export header names plus derived columns."""
    row = record.model_dump(mode="json", by_alias=True, include=set(RawDetailRecord.model_fields))
    row.update({
        "recordId": record.record_id,
        "durationMs": record.duration_ms,
        "duration": format_duration(record.duration_ms),
        "totalBytes": record.total_bytes,
        "dataSize": format_data_size(record.total_bytes),
        "suspicious": record.suspicious,
        "suspiciousReasons": [reason.value for reason in record.suspicious_reasons],
        "createdAt": record.created_at.isoformat() if record.created_at else None,
    })
    return row


class RecordSearch:
    """Search over stored detail records."""

    GLOBAL_QUERY_LENGTH = (3, 100)
    SUGGEST_QUERY_LENGTH = (2, 50)

    def __init__(self, store: RecordStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    @staticmethod
    def _criteria_query(criteria: SearchCriteria, cap: int) -> RecordQuery:
        limit = min(criteria.limit or cap, cap)
        return RecordQuery(
            subscriber_numbers=criteria.subscriber_numbers,
            any_addresses=criteria.addresses,
            device_ids=criteria.device_ids,
            window=criteria.window,
            access_types=criteria.access_types,
            min_bytes=criteria.min_bytes,
            max_bytes=criteria.max_bytes,
            min_duration_ms=criteria.min_duration_ms,
            max_duration_ms=criteria.max_duration_ms,
            suspicious=True if criteria.suspicious_only else None,
            descending=True,
            limit=limit,
        )

    def advanced_search(self, criteria: SearchCriteria) -> List[DetailRecord]:
        """Records matching every set criterion, newest first, capped at 1000."""
        return self.store.find_records(self._criteria_query(criteria, SearchConstants.MAX_RESULTS))

    # ========== LISTING ==========

    @staticmethod
    def _check_page(page: int, per_page: int) -> None:
        if page < 1:
            raise InvalidQueryError("page must be positive", details={"page": page})
        if not 1 <= per_page <= SearchConstants.MAX_RESULTS:
            raise InvalidQueryError(
                f"per_page must be 1-{SearchConstants.MAX_RESULTS}",
                details={"per_page": per_page},
            )

    def _page(self, query: RecordQuery, page: int, per_page: int) -> RecordPage:
        """Newest-first page of query.

        Stores take only a limit, so earlier pages are read and skipped.
        """
        query = query.model_copy(update={"descending": True, "limit": None})
        total = self.store.count_records(query)
        records = []
        if total > (page - 1) * per_page:
            records = self.store.find_records(
                query.model_copy(update={"limit": page * per_page})
            )[(page - 1) * per_page:]
        return RecordPage(
            records=records,
            page=page,
            per_page=per_page,
            total=total,
            pages=math.ceil(total / per_page),
        )

    def list_records(
        self,
        subscriber_contains: Optional[str] = None,
        access_type: Optional[AccessType] = None,
        suspicious: Optional[bool] = None,
        window: Optional[TimeWindow] = None,
        page: int = 1,
        per_page: int = SearchConstants.PAGE_SIZE,
    ) -> RecordPage:
        """Paginated record listing, newest first.

        Args:
            subscriber_contains: Case-insensitive substring of the subscriber number
            access_type: Only this access technology
            suspicious: Only flagged (True) or clean (False) records
            window: start_time window
            page: 1-based page number
            per_page: Records per page (1-1000)

        Returns:
            RecordPage with the page's records and the overall total
        """
        self._check_page(page, per_page)
        query = RecordQuery(
            access_types=[AccessType(access_type)] if access_type is not None else None,
            suspicious=suspicious,
            window=window,
        )
        if subscriber_contains:
            needle = subscriber_contains.strip().lower()
            subscribers = self._matching_values(("subscriber_number",), query, needle, prefix=False)
            if not subscribers:
                return RecordPage(page=page, per_page=per_page)
            query = query.model_copy(update={"subscriber_numbers": subscribers})
        return self._page(query, page, per_page)

    def records_for_subject(
        self,
        subscriber_number: str,
        window: Optional[TimeWindow] = None,
        page: int = 1,
        per_page: int = SearchConstants.PAGE_SIZE,
    ) -> SubjectRecords:
        """One subject's records, paginated, with related records.

        Related records are the newest sessions (at most 10) of other
        subjects to any destination the subject contacted in the window.
        """
        if not subscriber_number:
            raise InvalidQueryError("subscriber_number is required")
        self._check_page(page, per_page)

        own = RecordQuery(subscriber_numbers=[subscriber_number], window=window)
        result = SubjectRecords(
            subscriber_number=subscriber_number,
            page=self._page(own, page, per_page),
        )

        destinations = self.store.distinct_values("dest_address", own)
        if destinations:
            result.related_records = self.store.find_records(RecordQuery(
                dest_addresses=sorted(destinations),
                exclude_subscriber=subscriber_number,
                window=window,
                descending=True,
                limit=SearchConstants.RELATED_RECORDS_LIMIT,
            ))
        return result

    @staticmethod
    def _check_length(text: str, bounds: Tuple[int, int]) -> str:
        text = (text or "").strip()
        low, high = bounds
        if not low <= len(text) <= high:
            raise InvalidQueryError(
                f"Search query must be {low}-{high} characters",
                details={"length": len(text)},
            )
        return text

    def _matching_values(self, fields: Sequence[str], base: RecordQuery, needle: str, prefix: bool) -> List[str]:
        values = set()
        for field in fields:
            values |= self.store.distinct_values(field, base)
        if prefix:
            matched = [v for v in values if v.lower().startswith(needle)]
        else:
            matched = [v for v in values if needle in v.lower()]
        return sorted(matched)

    def global_search(
        self,
        text: str,
        entity_types: Optional[Sequence[str]] = None,
        window: Optional[TimeWindow] = None,
        suspicious_only: bool = False,
    ) -> GlobalSearchResult:
        """Case-insensitive substring search per entity type.

        Args:
            text: 3-100 characters
            entity_types: Any of phone, ip, imei, imsi, cell
                (default: phone, ip, imei, imsi)
            window: Optional start_time window
            suspicious_only: Only search suspicious records

        Returns:
            GlobalSearchResult with up to 20 record hits per entity type
        """
        text = self._check_length(text, self.GLOBAL_QUERY_LENGTH)
        entity_types = list(entity_types or DEFAULT_ENTITY_TYPES)
        unknown = [t for t in entity_types if t not in ENTITY_FIELDS]
        if unknown:
            raise InvalidQueryError(
                f"Invalid entity type: {', '.join(unknown)}",
                details={"allowed": sorted(ENTITY_FIELDS)},
            )

        needle = text.lower()
        base = RecordQuery(window=window, suspicious=True if suspicious_only else None)

        result = GlobalSearchResult(query=text)
        for entity_type in entity_types:
            fields, filter_name = ENTITY_FIELDS[entity_type]
            matched = self._matching_values(fields, base, needle, prefix=False)
            hits = EntityHits(entity_type=entity_type, values=matched)
            if matched:
                query = base.model_copy(update={filter_name: matched, "descending": True})
                records = self.store.find_records(
                    query.model_copy(update={"limit": SearchConstants.GLOBAL_HITS_PER_TYPE})
                )
                hits.record_ids = [r.record_id for r in records if r.record_id]
                hits.hit_count = len(records)
                hits.total_count = self.store.count_records(query)
            result.results[entity_type] = hits

        logger.info(f"Global search performed: {text!r} ({', '.join(entity_types)})")
        return result

    def suggest(self, prefix: str, entity_type: Optional[str] = None) -> List[Suggestion]:
        """Prefix suggestions: 5 phones, 5 addresses, 3 cells, at most 10."""
        prefix = self._check_length(prefix, self.SUGGEST_QUERY_LENGTH)
        if entity_type is not None and entity_type not in ENTITY_FIELDS:
            raise InvalidQueryError(f"Invalid entity type: {entity_type}")

        needle = prefix.lower()
        suggestions: List[Suggestion] = []
        for kind, (cap, label) in SUGGESTION_TYPES.items():
            if entity_type is not None and entity_type != kind:
                continue
            fields, _ = ENTITY_FIELDS[kind]
            for value in self._matching_values(fields, RecordQuery(), needle, prefix=True)[:cap]:
                suggestions.append(Suggestion(value=value, entity_type=kind, label=f"{label}: {value}"))

        return suggestions[: SearchConstants.SUGGESTION_LIMIT]

    # ========== EXPORT ==========

    def export(self, criteria: SearchCriteria, export_format: str = "csv") -> str:
        """Export matching records as CSV or JSON text.

        Uses the advanced search filters with a cap of 10,000 records.

        Args:
            criteria: Advanced search filters
            export_format: "csv" or "json"

        Returns:
            CSV with EXPORT_COLUMNS as header, or a JSON document with
            export_date, total_records, search_criteria and data
        """
        if export_format not in EXPORT_FORMATS:
            raise InvalidQueryError(
                f"Format must be one of: {', '.join(EXPORT_FORMATS)}",
                details={"format": export_format},
            )

        records = self.store.find_records(self._criteria_query(criteria, SearchConstants.EXPORT_LIMIT))
        rows = [export_row(record) for record in records]
        logger.info(f"Data export performed: {export_format}, {len(rows)} records")

        if export_format == "json":
            return json.dumps({
                "export_date": datetime.now(timezone.utc).isoformat(),
                "total_records": len(rows),
                "search_criteria": criteria.model_dump(mode="json"),
                "data": rows,
            })

        for row in rows:
            row["suspiciousReasons"] = ";".join(row["suspiciousReasons"])
        return write_csv(rows, io.StringIO(), columns=EXPORT_COLUMNS).getvalue()
