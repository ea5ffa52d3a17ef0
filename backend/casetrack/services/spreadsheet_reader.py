"""
Spreadsheet reader: turns an uploaded .xlsx / .xls / .csv into header-keyed rows.

The workbook is selected and flattened the same way regardless of format:
  * a sheet literally named "Sheet1" wins, otherwise the first sheet
  * the first non-blank row is the header row
  * every later non-blank row becomes a dict keyed by header text, with empty
    cells defaulting to "" so lookups never miss
"""
from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from casetrack.core.logger import logger
from casetrack.utils.exceptions import InputRejectedError

PREFERRED_SHEET = "Sheet1"
CSV_SHEET = "csv"
EMPTY_HEADER = "__EMPTY"

UNREADABLE_MESSAGE = "Failed to process Excel file. Please check the format."


@dataclass
class SheetData:
    sheet_name: str
    headers: List[str] = field(default_factory=list)
    rows: List[dict[str, Any]] = field(default_factory=list)


def select_sheet(sheet_names: Sequence[str]) -> str:
    if not sheet_names:
        raise InputRejectedError(UNREADABLE_MESSAGE)
    if PREFERRED_SHEET in sheet_names:
        return PREFERRED_SHEET
    return sheet_names[0]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _header_names(raw_headers: Sequence[Any], width: int) -> List[str]:
    names: List[str] = []
    seen: dict[str, int] = {}
    for idx in range(width):
        raw = raw_headers[idx] if idx < len(raw_headers) else None
        text = "" if raw is None else str(raw)
        base = text if text.strip() else EMPTY_HEADER

        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count}"
        while name in seen:
            count += 1
            name = f"{base}_{count}"
        seen[base] = count + 1
        seen.setdefault(name, 1)
        names.append(name)
    return names


def rows_to_records(sheet_name: str, raw_rows: Iterable[Sequence[Any]]) -> SheetData:
    """Flatten raw cell rows into header-keyed dicts."""
    non_blank = [list(row) for row in raw_rows if row and not all(_is_blank(v) for v in row)]
    if not non_blank:
        return SheetData(sheet_name=sheet_name)

    width = max(len(row) for row in non_blank)
    headers = _header_names(non_blank[0], width)

    records: List[dict[str, Any]] = []
    for row in non_blank[1:]:
        record: dict[str, Any] = {}
        for idx, header in enumerate(headers):
            value = row[idx] if idx < len(row) else None
            record[header] = "" if value is None else value
        records.append(record)

    return SheetData(sheet_name=sheet_name, headers=headers, rows=records)


# ============================================================================
# Format readers
# ============================================================================

def _read_xlsx(content: bytes) -> SheetData:
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        logger.warning("Unreadable xlsx upload: %s", e)
        raise InputRejectedError(UNREADABLE_MESSAGE)

    try:
        sheet_name = select_sheet(wb.sheetnames)
        ws = wb[sheet_name]
        raw_rows = [list(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    return rows_to_records(sheet_name, raw_rows)


def _xls_cell_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    ctype = cell.ctype
    if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
        except (xlrd.xldate.XLDateError, OverflowError, ValueError):
            return cell.value
    if ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _read_xls(content: bytes) -> SheetData:
    try:
        book = xlrd.open_workbook(file_contents=content)
    except (xlrd.XLRDError, xlrd.compdoc.CompDocError, OSError, ValueError, IndexError) as e:
        logger.warning("Unreadable xls upload: %s", e)
        raise InputRejectedError(UNREADABLE_MESSAGE)

    try:
        sheet_name = select_sheet(book.sheet_names())
        sheet = book.sheet_by_name(sheet_name)
        raw_rows = [
            [_xls_cell_value(sheet.cell(r, c), book.datemode) for c in range(sheet.ncols)]
            for r in range(sheet.nrows)
        ]
    finally:
        book.release_resources()

    return rows_to_records(sheet_name, raw_rows)


def _decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("cp1252", errors="replace")


def _read_csv(content: bytes) -> SheetData:
    text = _decode_text(content)
    try:
        raw_rows = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as e:
        logger.warning("Unreadable csv upload: %s", e)
        raise InputRejectedError(UNREADABLE_MESSAGE)
    return rows_to_records(CSV_SHEET, raw_rows)


def read_spreadsheet(filename: str, content: bytes) -> SheetData:
    """Dispatch on extension. The caller has already gated the extension."""
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return _read_csv(content)
    if name.endswith(".xls"):
        return _read_xls(content)
    return _read_xlsx(content)
