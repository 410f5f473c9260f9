"""
Source adapters for legacy ingestion (file I/O only, no kernel state).

``read_records`` picks an adapter by file extension and materialises the
records, converting parse failures into SourceFormatError so a bad file
aborts the invocation before any record is transformed.
"""

from __future__ import annotations

import csv
import json
import zipfile
from pathlib import Path
from typing import Any

from openpyxl.utils.exceptions import InvalidFileException

from refuse_kernel.exceptions import SourceFormatError

from refuse_ingestion.adapters.base import SourceAdapter, SourceProbe
from refuse_ingestion.adapters.csv_adapter import CsvSourceAdapter
from refuse_ingestion.adapters.json_adapter import JsonSourceAdapter, load_document_records
from refuse_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter


def default_adapters() -> dict[str, SourceAdapter]:
    return {
        ".csv": CsvSourceAdapter(),
        ".json": JsonSourceAdapter(),
        ".jsonl": JsonSourceAdapter(),
        ".xlsx": XlsxSourceAdapter(),
    }


def read_records(
    path: str | Path,
    options: dict[str, Any] | None = None,
    adapters: dict[str, SourceAdapter] | None = None,
) -> list[Any]:
    """
    Read every record of ``path``.

    Raises:
        FileNotFoundError: path does not exist.
        SourceFormatError: unsupported extension or unparseable content.
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Input file not found: {source}")
    registry = adapters or default_adapters()
    suffix = source.suffix.lower()
    adapter = registry.get(suffix)
    if adapter is None:
        raise SourceFormatError(str(source), f"unsupported file type {suffix or '(none)'}")

    opts = dict(options or {})
    if suffix == ".jsonl":
        opts.setdefault("format", "jsonl")
    try:
        return list(adapter.read(source, opts))
    except (
        json.JSONDecodeError,
        csv.Error,
        UnicodeDecodeError,
        ValueError,
        zipfile.BadZipFile,
        InvalidFileException,
        KeyError,
    ) as exc:
        raise SourceFormatError(str(source), str(exc)) from exc


__all__ = [
    "CsvSourceAdapter",
    "JsonSourceAdapter",
    "SourceAdapter",
    "SourceProbe",
    "XlsxSourceAdapter",
    "default_adapters",
    "load_document_records",
    "read_records",
]
