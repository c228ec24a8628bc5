"""Unit tests for formatting helpers."""

import pytest

from ipdr_intel.analytics import format_data_size, format_data_volume, format_duration


@pytest.mark.parametrize("total_bytes,expected", [
    (0, "0 B"),
    (1000, "1000 B"),
    (1500, "1.50 KB"),
    (2_500_000, "2.50 MB"),
    (3_210_000_000, "3.21 GB"),
])
def test_format_data_volume(total_bytes, expected):
    assert format_data_volume(total_bytes) == expected


@pytest.mark.parametrize("total_bytes,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (10_485_760, "10 MB"),
    (1024 ** 3, "1 GB"),
])
def test_format_data_size(total_bytes, expected):
    assert format_data_size(total_bytes) == expected


@pytest.mark.parametrize("duration_ms,expected", [
    (0, "0s"),
    (29_999, "29s"),
    (125_000, "2m 5s"),
    (3_723_000, "1h 2m 3s"),
])
def test_format_duration(duration_ms, expected):
    assert format_duration(duration_ms) == expected
