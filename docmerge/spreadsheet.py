"""Read merge rows from ``.csv`` and ``.xlsx`` files.

The first row holds the column names.  Only the first worksheet of a
workbook is read.  Empty cells are left out of a row entirely, which the
substitution engine treats as "no value".
"""

from __future__ import annotations

import csv
import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import openpyxl


class SpreadsheetError(Exception):
    pass


@dataclass
class SheetData:
    """Header columns (in sheet order) and the data rows keyed by them."""

    columns: List[str]
    rows: List[Dict[str, Any]]


def _cell_value(value: Any) -> Any:
    if isinstance(value, dt.datetime):
        if value.time() == dt.time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip() if value.strip() else None
    return value


def _header(values) -> List[str]:
    return [str(v).strip() if v is not None else "" for v in values]


def _columns(header: List[str]) -> List[str]:
    return list(dict.fromkeys(name for name in header if name))


def read_xlsx(path: Path) -> SheetData:
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as e:
        raise SpreadsheetError(f"cannot open workbook {path}: {e}") from e
    try:
        ws = wb.worksheets[0]
        rows_iter = ws.iter_rows(values_only=True)
        header = _header(next(rows_iter, ()))
        rows: List[Dict[str, Any]] = []
        for values in rows_iter:
            row = {}
            for name, raw in zip(header, values):
                value = _cell_value(raw)
                if name and value is not None:
                    row[name] = value
            if row:
                rows.append(row)
        return SheetData(_columns(header), rows)
    finally:
        wb.close()


def read_csv(path: Path) -> SheetData:
    try:
        with path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.reader(f)
            header = _header(next(reader, []))
            rows = []
            for values in reader:
                row = {name: value for name, value in zip(header, values) if name and value.strip()}
                if row:
                    rows.append(row)
            return SheetData(_columns(header), rows)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise SpreadsheetError(f"cannot read CSV {path}: {e}") from e


def read_sheet(path: str | Path) -> SheetData:
    """Load a spreadsheet, picking the reader by extension."""
    path = Path(path)
    if not path.exists():
        raise SpreadsheetError(f"file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return read_csv(path)
    if suffix in (".xlsx", ".xlsm"):
        return read_xlsx(path)
    raise SpreadsheetError(f"unsupported spreadsheet type {suffix!r} (use .csv or .xlsx)")


def read_rows(path: str | Path) -> List[Dict[str, Any]]:
    return read_sheet(path).rows


def column_names(rows: List[Dict[str, Any]]) -> List[str]:
    """Columns in first-seen order across all rows.

    Only columns with at least one value appear; use :attr:`SheetData.columns`
    for the full header.
    """
    names: Dict[str, None] = {}
    for row in rows:
        for key in row:
            names.setdefault(key, None)
    return list(names)
