"""CSV raw-row source.

Reads IPDR exports into header-keyed dicts for the pipeline. Header
names may be the camelCase export names or snake_case field names.
Files are parsed with pandas in chunks, so a large upload is never
held in memory as one frame.
"""

import io
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Union

import pandas as pd

from ipdr_intel.common.constants import IngestionConstants

PathOrStream = Union[str, Path, TextIO]

BOM = "\ufeff"


def _clean(row: Dict[Any, Any]) -> Dict[str, Optional[str]]:
    cleaned: Dict[str, Optional[str]] = {}
    for key, value in row.items():
        key = str(key).lstrip(BOM).strip()
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                value = None
        cleaned[key] = value
    return cleaned


def _iter_source(
    source: Any,
    encoding: Optional[str],
    chunk_rows: int,
) -> Iterator[Dict[str, Optional[str]]]:
    try:
        reader = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            encoding=encoding,
            chunksize=chunk_rows,
            # Never infer an index column; cells beyond the header are unused
            index_col=False,
            usecols=lambda column: True,
        )
    except pd.errors.EmptyDataError:
        return

    with reader:
        for chunk in reader:
            for row in chunk.to_dict(orient="records"):
                yield _clean(row)


def read_csv_rows(
    source: PathOrStream,
    chunk_rows: int = IngestionConstants.CSV_CHUNK_ROWS,
) -> Iterator[Dict[str, Optional[str]]]:
    """Yield one dict per CSV data row.

    Args:
        source: File path or an open text stream
        chunk_rows: Rows parsed per pandas chunk

    Yields:
        Row dicts keyed by header; cell values are text with blank
        cells as None. Identifiers keep their leading zeros
    """
    if isinstance(source, (str, Path)):
        # utf-8-sig strips the byte order mark spreadsheet tools add
        yield from _iter_source(Path(source), "utf-8-sig", chunk_rows)
    else:
        yield from _iter_source(source, None, chunk_rows)


def read_csv_bytes(
    data: bytes,
    chunk_rows: int = IngestionConstants.CSV_CHUNK_ROWS,
) -> Iterator[Dict[str, Optional[str]]]:
    """Yield rows from an uploaded CSV payload."""
    return _iter_source(io.BytesIO(data), "utf-8-sig", chunk_rows)
