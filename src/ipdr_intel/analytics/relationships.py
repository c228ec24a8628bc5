"""Relationship Builder - implicit contact graph from shared counterparts.

A subject's records are grouped by destination address. Each group
becomes one edge, and the other subscribers seen at that address in
the same window are its B-parties (sorted, capped per edge).

Depth > 1 expands breadth-first from the B-parties found at the
previous hop. Each subject is expanded once and depth is capped.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from ipdr_intel.common.config import Config
from ipdr_intel.common.constants import RelationshipConstants
from ipdr_intel.common.exceptions import InvalidQueryError
from ipdr_intel.core.types import StrengthTier
from ipdr_intel.data.schemas import DetailRecord
from ipdr_intel.analytics.schemas import RelationshipEdge, RelationshipGraph
from ipdr_intel.storage.query import RecordQuery, TimeWindow, as_utc
from ipdr_intel.storage.store import RecordStore

logger = logging.getLogger(__name__)


def strength_tier(frequency: int) -> StrengthTier:
    """HIGH above 10 sessions, MEDIUM above 5, else LOW."""
    if frequency > RelationshipConstants.STRENGTH_HIGH_ABOVE:
        return StrengthTier.HIGH
    if frequency > RelationshipConstants.STRENGTH_MEDIUM_ABOVE:
        return StrengthTier.MEDIUM
    return StrengthTier.LOW


def _edge_sort_key(edge: RelationshipEdge):
    # frequency desc, last contact desc, address asc
    return (-edge.frequency, -as_utc(edge.last_contact).timestamp(), edge.counterpart_address)


class RelationshipBuilder:
    """Build relationship edges for a subject from the record store."""

    def __init__(self, store: RecordStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    def _b_parties(self, subject: str, address: str, window: Optional[TimeWindow]) -> List[str]:
        others = self.store.distinct_values(
            "subscriber_number",
            RecordQuery(dest_addresses=[address], exclude_subscriber=subject, window=window),
        )
        return sorted(others)[: self.config.b_party_cap]

    def edges_for(
        self,
        subject: str,
        window: Optional[TimeWindow] = None,
        limit: Optional[int] = None,
        depth: int = 1,
    ) -> List[RelationshipEdge]:
        """Depth-1 edges of one subject.

        Args:
            subject: Subscriber number
            window: Optional start_time window; all time when omitted
            limit: Maximum edges returned (config.relationship_limit)
            depth: Hop number recorded on each edge

        Returns:
            Edges sorted by frequency desc, last contact desc, address asc
        """
        if not subject:
            raise InvalidQueryError("subject is required")
        limit = self.config.relationship_limit if limit is None else limit
        if limit < 1:
            raise InvalidQueryError("limit must be positive", details={"limit": limit})

        records = self.store.find_records(
            RecordQuery(subscriber_numbers=[subject], window=window)
        )

        groups: Dict[str, List[DetailRecord]] = defaultdict(list)
        for record in records:
            groups[record.dest_address].append(record)

        edges = []
        for address, group in groups.items():
            starts = [r.start_time for r in group]
            frequency = len(group)
            edges.append(RelationshipEdge(
                subject=subject,
                counterpart_address=address,
                frequency=frequency,
                total_duration_ms=sum(r.duration_ms for r in group),
                total_bytes=sum(r.total_bytes for r in group),
                first_contact=min(starts, key=as_utc),
                last_contact=max(starts, key=as_utc),
                strength_tier=strength_tier(frequency),
                suspicious_observed=any(r.suspicious for r in group),
                depth=depth,
            ))

        edges.sort(key=_edge_sort_key)
        edges = edges[:limit]

        # B-party lookup only for edges that survive the limit
        return [
            edge.model_copy(update={
                "b_parties": self._b_parties(subject, edge.counterpart_address, window)
            })
            for edge in edges
        ]

    def build(
        self,
        subject: str,
        window: Optional[TimeWindow] = None,
        limit: Optional[int] = None,
        depth: Optional[int] = None,
    ) -> RelationshipGraph:
        """Relationship graph around a subject.

        Args:
            subject: Center subscriber number
            window: Optional start_time window
            limit: Maximum edges per expanded subject
            depth: Hops to expand; clamped to [1, 3]

        Returns:
            RelationshipGraph with edges tagged by hop
        """
        depth = self.config.relationship_depth if depth is None else depth
        depth = max(1, min(depth, RelationshipConstants.MAX_DEPTH))

        edges: List[RelationshipEdge] = []
        visited = {subject}
        nodes = [subject]
        frontier = [subject]

        for hop in range(1, depth + 1):
            next_frontier: List[str] = []
            for current in frontier:
                hop_edges = self.edges_for(current, window=window, limit=limit, depth=hop)
                edges.extend(hop_edges)
                for edge in hop_edges:
                    for party in edge.b_parties:
                        if party not in visited:
                            visited.add(party)
                            nodes.append(party)
                            next_frontier.append(party)
            if not next_frontier:
                break
            frontier = next_frontier

        logger.debug(
            f"Relationship graph for {subject}: depth={depth} "
            f"nodes={len(nodes)} edges={len(edges)}"
        )
        return RelationshipGraph(
            center=subject,
            depth=depth,
            window=window,
            edges=edges,
            nodes=nodes,
        )
