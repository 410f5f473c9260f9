"""
XLSX source adapter for spreadsheet exports of legacy systems.

The first row (after skip_rows) of the chosen sheet is the header row.
Cell values are normalised: strings trimmed, blanks as empty strings, whole
floats as ints.  Fully blank rows are skipped.

source_options:
  sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
  skip_rows: number of rows to skip at top of sheet before the header. Default: 0.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterator

import openpyxl

from refuse_ingestion.adapters.base import SourceProbe


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and value == int(value):
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _headers(header_row: tuple[Any, ...]) -> list[str]:
    headers: list[str] = []
    for c, raw in enumerate(header_row):
        key = _normalize_header_cell(raw) or f"Column_{c + 1}"
        # Dedupe duplicate headers
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


class XlsxSourceAdapter:
    """Read .xlsx files as one dict per data row."""

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            rows = sheet.iter_rows(min_row=1 + skip_rows, values_only=True)
            header_row = next(rows, None)
            if header_row is None:
                return
            headers = _headers(header_row)
            for row in rows:
                vals = [_cell_value(v) for v in row[: len(headers)]]
                # Trailing empty cells may be absent from the stored row
                vals.extend([""] * (len(headers) - len(vals)))
                if not any(v != "" for v in vals):
                    continue
                yield dict(zip(headers, vals))
        finally:
            wb.close()

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        records = list(self.read(source_path, options))
        columns = tuple(records[0].keys()) if records else ()
        return SourceProbe(
            row_count=len(records),
            columns=columns,
            sample_rows=tuple(records[:5]),
            encoding=None,
            detected_delimiter=None,
        )
