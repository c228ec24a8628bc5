"""Unit tests for record search."""

import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from ipdr_intel.analytics import RecordSearch, SearchCriteria
from ipdr_intel.analytics.search import EXPORT_COLUMNS
from ipdr_intel.common.constants import SearchConstants
from ipdr_intel.common.exceptions import InvalidQueryError
from ipdr_intel.core.types import AccessType
from ipdr_intel.detection import normalize_record
from ipdr_intel.ingestion import read_csv_rows

from tests.fixtures.ipdr_rows import BASE_START, SUBJECT_A, SUBJECT_B, SUBJECT_C


@pytest.fixture
def search(store, config, make_record):
    store.add_record(make_record())
    store.add_record(make_record(startTime=BASE_START + timedelta(hours=1), destIP="192.0.2.45"))
    store.add_record(make_record(phoneNumber=SUBJECT_B, accessType="5G", originCellID="CELL-DEL-0099"))
    store.add_record(make_record(
        phoneNumber=SUBJECT_C,
        startTime=datetime(2026, 1, 25, 23, 30, tzinfo=timezone.utc),
        downlinkVolume=20_000_000,
    ))
    return RecordSearch(store, config=config)


class TestAdvancedSearch:

    def test_no_criteria_returns_all_newest_first(self, search):
        records = search.advanced_search(SearchCriteria())

        assert len(records) == 4
        assert records[0].subscriber_number == SUBJECT_C

    def test_combined_criteria(self, search):
        criteria = SearchCriteria(subscriber_numbers=[SUBJECT_A], addresses=["192.0.2.45"])
        records = search.advanced_search(criteria)

        assert len(records) == 1
        assert records[0].dest_address == "192.0.2.45"

    def test_access_type_and_volume(self, search):
        assert len(search.advanced_search(SearchCriteria(access_types=[AccessType.G5]))) == 1
        assert len(search.advanced_search(SearchCriteria(min_bytes=1_000_000))) == 1

    def test_suspicious_only(self, search):
        records = search.advanced_search(SearchCriteria(suspicious_only=True))
        assert [r.subscriber_number for r in records] == [SUBJECT_C]

    def test_limit_capped(self, search):
        assert len(search.advanced_search(SearchCriteria(limit=2))) == 2
        assert len(search.advanced_search(SearchCriteria(limit=50_000))) == 4


class TestGlobalSearch:

    def test_phone_substring(self, search):
        result = search.global_search("98123", entity_types=["phone"])

        hits = result.results["phone"]
        assert hits.values == [SUBJECT_B]
        assert hits.hit_count == 1
        assert hits.total_count == 1

    def test_ip_matches_any_role(self, search):
        result = search.global_search("10.0.0", entity_types=["ip"])

        hits = result.results["ip"]
        assert hits.values == ["10.0.0.12"]
        assert hits.total_count == 4

    def test_case_insensitive_cell(self, search):
        result = search.global_search("del-0099", entity_types=["cell"])
        assert result.results["cell"].values == ["CELL-DEL-0099"]

    def test_default_entity_types(self, search):
        result = search.global_search("4044501")
        assert set(result.results) == {"phone", "ip", "imei", "imsi"}
        assert result.results["imsi"].total_count == 4
        assert result.results["phone"].hit_count == 0

    def test_suspicious_only(self, search):
        result = search.global_search("9198", entity_types=["phone"], suspicious_only=True)
        assert result.results["phone"].values == [SUBJECT_C]

    @pytest.mark.parametrize("text", ["ab", "  a ", "x" * 101])
    def test_query_length(self, search, text):
        with pytest.raises(InvalidQueryError):
            search.global_search(text)

    def test_unknown_entity_type(self, search):
        with pytest.raises(InvalidQueryError):
            search.global_search("9198", entity_types=["email"])


class TestSuggestions:

    def test_prefix_suggestions(self, search):
        suggestions = search.suggest("91")

        assert all(s.entity_type == "phone" for s in suggestions)
        assert [s.value for s in suggestions] == sorted([SUBJECT_A, SUBJECT_B, SUBJECT_C])
        assert suggestions[0].label == f"Phone: {suggestions[0].value}"

    def test_cells_capped(self, search):
        suggestions = search.suggest("CE", entity_type="cell")
        assert [s.value for s in suggestions] == ["CELL-DEL-0042", "CELL-DEL-0099"]

    def test_total_capped_at_ten(self, store, config, make_record):
        for i in range(12):
            store.add_record(make_record(
                phoneNumber=f"12{i:010d}",
                destIP=f"12.0.0.{i + 1}",
                originCellID=f"12-CELL-{i}",
            ))
        suggestions = RecordSearch(store, config=config).suggest("12")

        kinds = [s.entity_type for s in suggestions]
        assert len(suggestions) == 10
        assert kinds.count("phone") == 5
        assert kinds.count("ip") == 5

    def test_prefix_too_short(self, search):
        with pytest.raises(InvalidQueryError):
            search.suggest("9")


class TestListRecords:
    """Newest first: C 23:30, A 15:30, B 14:30, A 14:30."""

    def test_first_page(self, search):
        page = search.list_records(per_page=3)

        assert page.total == 4
        assert page.pages == 2
        assert page.page == 1
        assert [r.subscriber_number for r in page.records] == [SUBJECT_C, SUBJECT_A, SUBJECT_B]

    def test_second_page(self, search):
        page = search.list_records(page=2, per_page=3)

        assert len(page.records) == 1
        assert page.records[0].subscriber_number == SUBJECT_A
        assert page.records[0].start_time == BASE_START

    def test_page_past_end_is_empty(self, search):
        page = search.list_records(page=3, per_page=3)

        assert page.records == []
        assert page.total == 4

    def test_subscriber_substring(self, search):
        page = search.list_records(subscriber_contains="98123")

        assert page.total == 1
        assert page.records[0].subscriber_number == SUBJECT_B

    def test_no_subscriber_match(self, search):
        page = search.list_records(subscriber_contains="55555")

        assert page.total == 0
        assert page.pages == 0
        assert page.records == []

    def test_filters(self, search):
        assert search.list_records(access_type="5G").total == 1
        assert search.list_records(suspicious=True).total == 1
        assert search.list_records(suspicious=False).total == 3

    @pytest.mark.parametrize("kwargs", [
        {"page": 0},
        {"per_page": 0},
        {"per_page": 1001},
    ])
    def test_invalid_paging(self, search, kwargs):
        with pytest.raises(InvalidQueryError):
            search.list_records(**kwargs)


class TestRecordsForSubject:

    def test_own_records_and_related(self, search):
        result = search.records_for_subject(SUBJECT_A)

        assert result.page.total == 2
        assert [r.start_time for r in result.page.records] == [BASE_START + timedelta(hours=1), BASE_START]
        assert [r.subscriber_number for r in result.related_records] == [SUBJECT_C, SUBJECT_B]

    def test_unknown_subject(self, search):
        result = search.records_for_subject("919000000000")

        assert result.page.total == 0
        assert result.related_records == []

    def test_related_capped(self, store, config, make_record):
        store.add_record(make_record())
        for i in range(12):
            store.add_record(make_record(
                phoneNumber=f"9198000001{i:02d}",
                startTime=BASE_START + timedelta(minutes=i + 1),
            ))

        result = RecordSearch(store, config=config).records_for_subject(SUBJECT_A)

        assert len(result.related_records) == 10
        assert SUBJECT_A not in {r.subscriber_number for r in result.related_records}

    def test_subject_required(self, search):
        with pytest.raises(InvalidQueryError):
            search.records_for_subject("")


class TestExport:

    def test_csv(self, search):
        text = search.export(SearchCriteria(), "csv")

        rows = list(read_csv_rows(io.StringIO(text)))

        assert text.splitlines()[0].split(",") == EXPORT_COLUMNS
        assert len(rows) == 4
        assert rows[0]["phoneNumber"] == SUBJECT_C
        assert rows[0]["suspiciousReasons"] == "HIGH_NIGHT_ACTIVITY;UNUSUAL_DATA_VOLUME"
        assert rows[0]["dataSize"] == "19.07 MB"
        assert rows[0]["duration"] == "5m 0s"

    def test_csv_rows_can_be_reingested(self, search):
        rows = list(read_csv_rows(io.StringIO(search.export(SearchCriteria(), "csv"))))

        record = normalize_record(rows[0])

        assert record.subscriber_number == SUBJECT_C
        assert record.total_bytes == 20_001_024

    def test_json(self, search):
        document = json.loads(search.export(SearchCriteria(suspicious_only=True), "json"))

        assert document["total_records"] == 1
        assert document["search_criteria"]["suspicious_only"] is True
        assert "export_date" in document
        row = document["data"][0]
        assert row["phoneNumber"] == SUBJECT_C
        assert row["suspiciousReasons"] == ["HIGH_NIGHT_ACTIVITY", "UNUSUAL_DATA_VOLUME"]
        assert row["totalBytes"] == 20_001_024

    def test_export_cap(self, search, monkeypatch):
        monkeypatch.setattr(SearchConstants, "EXPORT_LIMIT", 2)

        document = json.loads(search.export(SearchCriteria(limit=50_000), "json"))

        assert document["total_records"] == 2

    def test_unknown_format(self, search):
        with pytest.raises(InvalidQueryError):
            search.export(SearchCriteria(), "xml")
