"""Unit tests for relationship edges and the contact graph."""

from datetime import datetime, timedelta, timezone

import pytest

from ipdr_intel.analytics import RelationshipBuilder, strength_tier
from ipdr_intel.common.config import Config
from ipdr_intel.common.exceptions import InvalidQueryError
from ipdr_intel.core.types import StrengthTier
from ipdr_intel.storage import TimeWindow

from tests.fixtures.ipdr_rows import BASE_START, SUBJECT_A, SUBJECT_B, SUBJECT_C

SHARED = "198.51.100.20"
OTHER = "192.0.2.77"


def _add_sessions(store, make_record, subscriber, address, count, start=BASE_START, **overrides):
    for i in range(count):
        store.add_record(make_record(
            phoneNumber=subscriber,
            destIP=address,
            startTime=start + timedelta(minutes=i),
            **overrides,
        ))


class TestStrengthTier:

    @pytest.mark.parametrize("frequency,tier", [
        (1, StrengthTier.LOW),
        (5, StrengthTier.LOW),
        (6, StrengthTier.MEDIUM),
        (10, StrengthTier.MEDIUM),
        (11, StrengthTier.HIGH),
    ])
    def test_thresholds(self, frequency, tier):
        assert strength_tier(frequency) == tier


class TestEdges:

    @pytest.fixture
    def builder(self, store, config):
        return RelationshipBuilder(store, config=config)

    def test_edge_aggregates(self, builder, store, make_record, window):
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 6)

        edges = builder.edges_for(SUBJECT_A, window=window)

        assert len(edges) == 1
        edge = edges[0]
        assert edge.counterpart_address == SHARED
        assert edge.frequency == 6
        assert edge.strength_tier == StrengthTier.MEDIUM
        assert edge.total_duration_ms == 6 * 300_000
        assert edge.total_bytes == 6 * 5120
        assert edge.first_contact == BASE_START
        assert edge.last_contact == BASE_START + timedelta(minutes=5)
        assert edge.suspicious_observed is False
        assert edge.b_parties == []

    def test_b_parties_are_other_subscribers(self, builder, store, make_record, window):
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 2)
        _add_sessions(store, make_record, SUBJECT_C, SHARED, 1)
        _add_sessions(store, make_record, SUBJECT_B, SHARED, 1)

        edge = builder.edges_for(SUBJECT_A, window=window)[0]

        assert edge.b_parties == sorted([SUBJECT_B, SUBJECT_C])
        assert SUBJECT_A not in edge.b_parties

    def test_b_parties_capped(self, builder, store, make_record, window):
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 1)
        others = [f"91900000000{i}" for i in range(8)]
        for number in others:
            _add_sessions(store, make_record, number, SHARED, 1)

        edge = builder.edges_for(SUBJECT_A, window=window)[0]

        assert edge.b_parties == sorted(others)[:5]

    def test_sorted_by_frequency_then_recency(self, builder, store, make_record, window):
        _add_sessions(store, make_record, SUBJECT_A, OTHER, 2)
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 3, start=BASE_START + timedelta(hours=1))
        _add_sessions(store, make_record, SUBJECT_A, "203.0.113.99", 2, start=BASE_START + timedelta(hours=2))

        edges = builder.edges_for(SUBJECT_A, window=window)

        assert [e.counterpart_address for e in edges] == [SHARED, "203.0.113.99", OTHER]

    def test_limit(self, builder, store, make_record, window):
        for i in range(4):
            _add_sessions(store, make_record, SUBJECT_A, f"192.0.2.{i + 1}", i + 1)

        edges = builder.edges_for(SUBJECT_A, window=window, limit=2)

        assert [e.frequency for e in edges] == [4, 3]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, builder, limit):
        with pytest.raises(InvalidQueryError):
            builder.edges_for(SUBJECT_A, limit=limit)

    def test_window_excludes_sessions(self, builder, store, make_record):
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 3)
        later = TimeWindow(start=BASE_START + timedelta(days=1), end=BASE_START + timedelta(days=2))

        assert builder.edges_for(SUBJECT_A, window=later) == []

    def test_suspicious_observed(self, builder, store, make_record, window):
        _add_sessions(
            store, make_record, SUBJECT_A, SHARED, 1,
            start=datetime(2026, 1, 25, 23, 0, tzinfo=timezone.utc),
        )

        assert builder.edges_for(SUBJECT_A, window=window)[0].suspicious_observed is True

    def test_subject_required(self, builder):
        with pytest.raises(InvalidQueryError):
            builder.edges_for("")


class TestGraph:

    @pytest.fixture
    def chain(self, store, make_record):
        """A and B share SHARED; B and C share OTHER."""
        _add_sessions(store, make_record, SUBJECT_A, SHARED, 2)
        _add_sessions(store, make_record, SUBJECT_B, SHARED, 1, start=BASE_START + timedelta(hours=1))
        _add_sessions(store, make_record, SUBJECT_B, OTHER, 1, start=BASE_START + timedelta(hours=2))
        _add_sessions(store, make_record, SUBJECT_C, OTHER, 1, start=BASE_START + timedelta(hours=3))
        return store

    def test_depth_one(self, chain, config, window):
        graph = RelationshipBuilder(chain, config=config).build(SUBJECT_A, window=window, depth=1)

        assert graph.center == SUBJECT_A
        assert graph.nodes == [SUBJECT_A, SUBJECT_B]
        assert all(e.depth == 1 for e in graph.edges)

    def test_depth_two_reaches_second_hop(self, chain, config, window):
        graph = RelationshipBuilder(chain, config=config).build(SUBJECT_A, window=window, depth=2)

        assert graph.nodes == [SUBJECT_A, SUBJECT_B, SUBJECT_C]
        second_hop = [e for e in graph.edges if e.depth == 2]
        assert {e.subject for e in second_hop} == {SUBJECT_B}
        assert {e.counterpart_address for e in second_hop} == {SHARED, OTHER}

    def test_depth_clamped(self, chain, config, window):
        graph = RelationshipBuilder(chain, config=config).build(SUBJECT_A, window=window, depth=9)

        assert graph.depth == 3
        # Every subject is expanded once
        subjects = [e.subject for e in graph.edges]
        assert subjects.count(SUBJECT_A) == 1

    def test_default_depth_from_config(self, chain, window):
        config = Config(timezone="UTC", relationship_depth=2)
        graph = RelationshipBuilder(chain, config=config).build(SUBJECT_A, window=window)

        assert graph.depth == 2
        assert SUBJECT_C in graph.nodes
