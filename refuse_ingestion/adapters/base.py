"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read() yields one item per source record (streaming).  Items
    are normally dicts; structured sources may yield a non-object item, which
    the engine reports as a malformed record at that position.
    SourceAdapter.probe() returns a quick snapshot: row count, columns, sample rows.

Architecture: refuse_ingestion/adapters. File I/O only, no kernel state.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading structured source files into record dicts."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[Any]:
        """Yield one item per source record."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        """Quick probe: row count, detected columns, sample rows."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing a source file (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]  # First 5 rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None
