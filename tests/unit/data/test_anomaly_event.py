"""Unit tests for the AnomalyEvent and DetailRecord schemas."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from ipdr_intel.core.types import AnomalyStatus, ReasonCode, Severity
from ipdr_intel.data.schemas import AnomalyEvent
from ipdr_intel.detection import normalize_record

from tests.fixtures.ipdr_rows import BASE_START, SUBJECT_A, build_row


def _event(**overrides):
    fields = dict(
        reason_code=ReasonCode.SHORT_DURATION_FREQUENT,
        severity=Severity.HIGH,
        confidence=0.8,
        subscriber_number=SUBJECT_A,
        description="Short duration session: 12000ms",
        first_occurrence=BASE_START,
        last_occurrence=BASE_START + timedelta(seconds=12),
    )
    fields.update(overrides)
    return AnomalyEvent(**fields)


class TestAnomalyEvent:

    def test_defaults(self):
        event = _event()

        assert event.event_id.startswith("evt_")
        assert event.status == AnomalyStatus.NEW
        assert event.case_id is None
        assert event.automatic_detection is True
        assert event.is_open is True

    def test_risk_score_computed(self):
        assert _event().risk_score == 60.0
        assert _event(severity=Severity.CRITICAL, confidence=0.5).risk_score == 50.0

    def test_inconsistent_risk_rejected(self):
        with pytest.raises(ValidationError):
            _event(risk_score=99.0)

    def test_consistent_risk_accepted(self):
        assert _event(risk_score=60.0).risk_score == 60.0

    def test_occurrence_order(self):
        with pytest.raises(ValidationError):
            _event(last_occurrence=BASE_START - timedelta(seconds=1))

    def test_resolved_is_not_open(self):
        assert _event(status=AnomalyStatus.RESOLVED).is_open is False
        assert _event(status=AnomalyStatus.FALSE_POSITIVE).is_open is True

    def test_unique_ids(self):
        assert _event().event_id != _event().event_id


class TestDetailRecord:

    def test_natural_key(self):
        record = normalize_record(build_row())

        assert record.natural_key == (
            SUBJECT_A, BASE_START.isoformat(), "198.51.100.20", 443, 40512,
        )

    def test_endpoint_addresses(self):
        record = normalize_record(build_row())
        assert record.endpoint_addresses == ("10.0.0.12", "203.0.113.7", "198.51.100.20")

    def test_records_are_immutable(self):
        record = normalize_record(build_row())

        with pytest.raises(ValidationError):
            record.total_bytes = 1
