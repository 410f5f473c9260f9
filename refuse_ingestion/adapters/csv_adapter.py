"""
CSV source adapter.

Uses csv.DictReader; the header row defines field names.  Blank lines are
skipped and every value is trimmed.  Configurable: delimiter, encoding,
quoting, skip_rows.  Handles BOM via utf-8-sig when encoding is utf-8.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from refuse_ingestion.adapters.base import SourceProbe

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _get_quoting(options: dict[str, Any]) -> int:
    q = options.get("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _clean_row(row: dict[str | None, Any]) -> dict[str, Any] | None:
    """Trim keys and values; None for a row with no content."""
    cleaned: dict[str, Any] = {}
    for key, value in row.items():
        if key is None:
            # Surplus cells beyond the header
            continue
        text = value.strip() if isinstance(value, str) else ("" if value is None else value)
        cleaned[key.strip()] = text
    if not any(v != "" for v in cleaned.values()):
        return None
    return cleaned


class CsvSourceAdapter:
    """Read CSV files as one dict per row. Streams; does not load entire file."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))
        quoting = _get_quoting(options)

        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter, quoting=quoting)
            for row in reader:
                cleaned = _clean_row(row)
                if cleaned is not None:
                    yield cleaned

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        sample_size = 5

        sample: list[dict[str, Any]] = []
        count = 0
        columns: tuple[str, ...] = ()
        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(int(options.get("skip_rows", 0))):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter, quoting=_get_quoting(options))
            columns = tuple(name.strip() for name in (reader.fieldnames or ()))
            for row in reader:
                cleaned = _clean_row(row)
                if cleaned is None:
                    continue
                count += 1
                if len(sample) < sample_size:
                    sample.append(cleaned)

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
