"""Unit tests for the CSV raw-row source."""

import io

from ipdr_intel.detection import normalize_record
from ipdr_intel.ingestion import read_csv_bytes, read_csv_rows

HEADER = (
    "privateIP,privatePort,publicIP,publicPort,destIP,destPort,phoneNumber,imei,imsi,"
    "startTime,endTime,originCellID,originLat,originLong,uplinkVolume,downlinkVolume,accessType"
)
ROW = (
    "10.0.0.12,40512,203.0.113.7,61000,198.51.100.20,443,919876543210,356938035643809,"
    "404450123456789,2026-01-25T14:30:00Z,2026-01-25T14:35:00Z,CELL-DEL-0042,28.6139,"
    "77.209,1024,4096,4G"
)


class TestReadCsv:

    def test_rows_keyed_by_header(self):
        rows = list(read_csv_rows(io.StringIO(f"{HEADER}\n{ROW}\n")))

        assert len(rows) == 1
        assert rows[0]["phoneNumber"] == "919876543210"
        assert rows[0]["accessType"] == "4G"

    def test_rows_normalize(self):
        row = next(read_csv_rows(io.StringIO(f"{HEADER}\n{ROW}\n")))
        record = normalize_record(row)

        assert record.total_bytes == 5120
        assert record.duration_ms == 300_000
        assert record.private_port == 40512

    def test_byte_order_mark_stripped(self):
        payload = f"\ufeff{HEADER}\n{ROW}\n".encode("utf-8")

        rows = list(read_csv_bytes(payload))

        assert "privateIP" in rows[0]

    def test_blank_cells_become_none(self):
        blank_imsi = ROW.replace("404450123456789", "  ")
        row = next(read_csv_rows(io.StringIO(f"{HEADER}\n{blank_imsi}\n")))

        assert row["imsi"] is None

    def test_values_stripped(self):
        padded = ROW.replace("CELL-DEL-0042", " CELL-DEL-0042 ")
        row = next(read_csv_rows(io.StringIO(f"{HEADER}\n{padded}\n")))

        assert row["originCellID"] == "CELL-DEL-0042"

    def test_extra_cells_dropped(self):
        rows = list(read_csv_rows(io.StringIO(f"{HEADER}\n{ROW}\n{ROW},overflow\n")))

        assert len(rows) == 2
        assert len(rows[1]) == 17
        assert "overflow" not in rows[1].values()

    def test_identifiers_keep_leading_zeros(self):
        zero_led = ROW.replace("919876543210", "0919876543210")
        row = next(read_csv_rows(io.StringIO(f"{HEADER}\n{zero_led}\n")))

        assert row["phoneNumber"] == "0919876543210"
        assert row["privatePort"] == "40512"

    def test_rows_span_chunks_in_order(self):
        cells = ["CELL-1", "CELL-2", "CELL-3"]
        lines = [ROW.replace("CELL-DEL-0042", cell) for cell in cells]
        payload = "\n".join([HEADER, *lines]) + "\n"

        rows = list(read_csv_rows(io.StringIO(payload), chunk_rows=2))

        assert [row["originCellID"] for row in rows] == cells

    def test_header_only_yields_nothing(self):
        assert list(read_csv_rows(io.StringIO(f"{HEADER}\n"))) == []

    def test_empty_payload_yields_nothing(self):
        assert list(read_csv_bytes(b"")) == []

    def test_reads_from_path(self, tmp_path):
        path = tmp_path / "export.csv"
        path.write_text(f"\ufeff{HEADER}\n{ROW}\n{ROW}\n", encoding="utf-8")

        rows = list(read_csv_rows(path))

        assert len(rows) == 2
        assert "privateIP" in rows[0]
