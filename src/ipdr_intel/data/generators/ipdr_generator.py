"""Synthetic IPDR row generator.

Produces raw rows shaped like an operator IPDR export (camelCase
headers). Suspicious traits are injected at fixed rates and never appear
by accident, so callers can predict classification exactly:

  - night sessions start at 23:xx or 02:xx, others between 08:00 and 20:59
  - high-volume sessions exceed 10 MiB, others stay at or below 2 MiB
  - short sessions last 5-29 s, others at least 60 s
"""

import csv
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO, Union

from ipdr_intel.data.generators.base_generator import (
    ACCESS_TYPE_WEIGHTS,
    ACCESS_TYPES,
    CELL_SITES,
    COMMON_DEST_PORTS,
    BaseGenerator,
)

MIB = 1024 * 1024

CSV_COLUMNS = [
    "privateIP", "privatePort", "publicIP", "publicPort", "destIP", "destPort",
    "phoneNumber", "imei", "imsi", "startTime", "endTime",
    "originCellID", "originLat", "originLong",
    "uplinkVolume", "downlinkVolume", "accessType",
]


class IPDRGenerator(BaseGenerator):
    """Deterministic generator of raw IPDR rows."""

    def __init__(
        self,
        seed: int = 42,
        night_rate: float = 0.1,
        high_volume_rate: float = 0.05,
        short_duration_rate: float = 0.1,
        span_days: int = 7,
    ):
        super().__init__(seed)
        for name, rate in (
            ("night_rate", night_rate),
            ("high_volume_rate", high_volume_rate),
            ("short_duration_rate", short_duration_rate),
        ):
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {rate}")
        if span_days < 1:
            raise ValueError("span_days must be at least 1")
        self.night_rate = night_rate
        self.high_volume_rate = high_volume_rate
        self.short_duration_rate = short_duration_rate
        self.span_days = span_days

    def _start_time(self, start: datetime, night: bool) -> datetime:
        day = start.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(
            days=self._random_int(0, self.span_days - 1)
        )
        hour = self._random_choice([23, 2]) if night else self._random_int(8, 20)
        return day + timedelta(
            hours=hour,
            minutes=self._random_int(0, 59),
            seconds=self._random_int(0, 59),
        )

    def _volumes(self, high: bool) -> tuple:
        if high:
            total = self._random_int(11 * MIB, 50 * MIB)
        else:
            total = self._random_int(1024, 2 * MIB)
        uplink = self._random_int(0, total // 4)
        return uplink, total - uplink

    def generate_row(
        self,
        subscriber: Dict[str, str],
        start: datetime,
        destinations: List[str],
    ) -> Dict[str, Any]:
        """Generate one raw row for a subscriber."""
        self._row_counter += 1

        night = self._random_bool(self.night_rate)
        high_volume = self._random_bool(self.high_volume_rate)
        short = self._random_bool(self.short_duration_rate)

        started = self._start_time(start, night)
        seconds = self._random_int(5, 29) if short else self._random_int(60, 3600)
        uplink, downlink = self._volumes(high_volume)
        cell_id = self._random_choice(sorted(CELL_SITES))
        lat, lng = CELL_SITES[cell_id]

        return {
            "privateIP": self.generate_private_ip(),
            "privatePort": self._random_int(1024, 65535),
            "publicIP": self.generate_public_ip(),
            "publicPort": self._random_int(1024, 65535),
            "destIP": self._random_choice(destinations),
            "destPort": self._random_choice(COMMON_DEST_PORTS),
            **subscriber,
            "startTime": started.isoformat(),
            "endTime": (started + timedelta(seconds=seconds)).isoformat(),
            "originCellID": cell_id,
            "originLat": round(lat + self._random_float(-0.01, 0.01), 6),
            "originLong": round(lng + self._random_float(-0.01, 0.01), 6),
            "uplinkVolume": uplink,
            "downlinkVolume": downlink,
            "accessType": self.rng.choices(ACCESS_TYPES, weights=ACCESS_TYPE_WEIGHTS)[0],
        }

    def generate_rows(
        self,
        count: int,
        start: datetime,
        subscribers: int = 10,
        destinations: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Generate `count` rows spread over span_days from `start`.

        Args:
            count: Number of rows
            start: First day of the span (time of day is ignored)
            subscribers: Size of the subscriber pool
            destinations: Counterpart address pool; a small shared pool is
                generated when omitted so relationships emerge

        Returns:
            List of raw row dicts keyed by export header names
        """
        if count < 0:
            raise ValueError("count must be non-negative")
        if subscribers < 1:
            raise ValueError("subscribers must be at least 1")

        pool = [self.generate_subscriber(i) for i in range(subscribers)]
        if destinations is None:
            destinations = [self.generate_public_ip() for _ in range(max(3, subscribers // 2))]

        return [
            self.generate_row(self._random_choice(pool), start, destinations)
            for _ in range(count)
        ]


def _write_rows(stream: TextIO, rows: Iterable[Dict[str, Any]], columns: Sequence[str]) -> None:
    writer = csv.DictWriter(stream, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)


def write_csv(
    rows: Iterable[Dict[str, Any]],
    destination: Union[str, Path, TextIO],
    columns: Sequence[str] = CSV_COLUMNS,
) -> Union[Path, TextIO]:
    """Write rows as CSV with a header line.

    Args:
        rows: Row dicts keyed by column name; other keys are ignored
        destination: File path (parent directories are created) or an
            open text stream
        columns: Header, in column order. Defaults to the IPDR export
            columns

    Returns:
        The written path, or the stream as given
    """
    if isinstance(destination, (str, Path)):
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            _write_rows(f, rows, columns)
        return path
    _write_rows(destination, rows, columns)
    return destination
