"""
JSON source adapter.

Handles a single JSON object (one record), a JSON array of objects, and JSON
Lines (one object per line).  Configurable: json_path for nested arrays
(e.g. "data.customers"), format "array" | "jsonl".  Keys keep their source
casing; field lookup in the mapping engine is case-insensitive.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from refuse_ingestion.adapters.base import SourceProbe


def _get_nested(data: Any, path: str) -> Any:
    """Follow dot-separated path into dict/list. Returns None if key missing."""
    if not path.strip():
        return data
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def _all_keys(rows: list[Any]) -> tuple[str, ...]:
    """Union of keys from first 5 rows for column list."""
    seen: set[str] = set()
    for row in rows[:5]:
        if isinstance(row, dict):
            seen.update(str(k) for k in row.keys())
    return tuple(sorted(seen))


def load_document_records(data: Any, json_path: str | None = None) -> list[Any]:
    """Records of an already-parsed document: object -> [object], array -> items."""
    root = _get_nested(data, json_path) if json_path else data
    if isinstance(root, dict):
        return [root]
    if isinstance(root, list):
        return list(root)
    raise ValueError(
        f"expected a JSON object or array of objects, got {type(root).__name__}"
    )


class JsonSourceAdapter:
    """Read JSON object, array or JSON Lines files as one item per record."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[Any]:
        fmt = options.get("format", "array")
        encoding = options.get("encoding", "utf-8")

        if fmt == "jsonl":
            with source_path.open("r", encoding=encoding) as f:
                for line in f:
                    line = line.strip()
                    if line:
                        yield json.loads(line)
            return

        with source_path.open("r", encoding=encoding) as f:
            data = json.load(f)
        yield from load_document_records(data, options.get("json_path"))

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        records = list(self.read(source_path, options))
        sample = [r for r in records[:5] if isinstance(r, dict)]
        return SourceProbe(
            row_count=len(records),
            columns=_all_keys(sample),
            sample_rows=tuple(sample),
            encoding=options.get("encoding", "utf-8"),
            detected_delimiter=None,
        )
