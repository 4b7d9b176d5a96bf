"""
Spreadsheet reader: turns uploaded ``.xlsx``, ``.xls`` or ``.csv`` bytes into
named sheets of header-keyed rows.

The first row of every sheet is the header. Cells missing from a row default to
an empty string, trailing fully-empty rows are dropped.
"""
from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, Iterable, List, Optional, Sequence

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException

from app.core.exceptions import ImportStructureError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

# Sheets named like this are treated as data even when they are not first
_DATA_SHEET_NAMES = ("data", "sheet1")
# Sheets whose name contains one of these are instructions, not data
_GUIDE_MARKERS = ("panduan", "guide", "instruksi")


@dataclass
class Sheet:
    name: str
    rows: List[Dict[str, Any]] = field(default_factory=list)


def discover_sheet(sheet_names: Sequence[str]) -> str:
    """
    Pick the sheet to import.

    1. The first sheet named ``data`` / ``sheet1`` or whose name contains ``data``.
    2. Otherwise the first sheet that is not a guide (panduan/guide/instruksi).
    3. Otherwise the very first sheet.
    """
    if not sheet_names:
        raise ImportStructureError("File tidak memiliki sheet")

    for name in sheet_names:
        lowered = name.lower()
        if lowered in _DATA_SHEET_NAMES or "data" in lowered:
            return name

    for name in sheet_names:
        lowered = name.lower()
        if not any(marker in lowered for marker in _GUIDE_MARKERS):
            return name

    return sheet_names[0]


def _header_key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _rows_to_records(raw_rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
    iterator = iter(raw_rows)
    try:
        header = [_header_key(cell) for cell in next(iterator)]
    except StopIteration:
        return []

    records: List[Dict[str, Any]] = []
    for raw in iterator:
        cells = list(raw)
        if all(cell is None or (isinstance(cell, str) and cell.strip() == "") for cell in cells):
            continue
        record: Dict[str, Any] = {}
        for index, column in enumerate(header):
            if not column:
                continue
            value = cells[index] if index < len(cells) else None
            record[column] = "" if value is None else value
        records.append(record)
    return records


# ElementTree's ParseError and lxml's XMLSyntaxError both derive from SyntaxError
_XLSX_ERRORS = (InvalidFileException, zipfile.BadZipFile, SyntaxError, KeyError, ValueError, OSError)


def _read_xlsx(content: bytes) -> List[Sheet]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except _XLSX_ERRORS as e:
        raise ImportStructureError(f"File Excel tidak dapat dibaca: {e}") from e

    # Read-only worksheets parse their XML lazily, while iterating
    try:
        return [
            Sheet(name=worksheet.title, rows=_rows_to_records(worksheet.iter_rows(values_only=True)))
            for worksheet in workbook.worksheets
        ]
    except _XLSX_ERRORS as e:
        raise ImportStructureError(f"File Excel tidak dapat dibaca: {e}") from e
    finally:
        workbook.close()


def _read_xls(content: bytes) -> List[Sheet]:
    try:
        book = xlrd.open_workbook(file_contents=content)
    except (xlrd.XLRDError, xlrd.compdoc.CompDocError) as e:
        raise ImportStructureError(f"File Excel tidak dapat dibaca: {e}") from e

    sheets = []
    for worksheet in book.sheets():
        raw_rows = []
        for row_index in range(worksheet.nrows):
            row = []
            for cell in worksheet.row(row_index):
                if cell.ctype == xlrd.XL_CELL_DATE:
                    row.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
                elif cell.ctype == xlrd.XL_CELL_EMPTY:
                    row.append(None)
                else:
                    row.append(cell.value)
            raw_rows.append(row)
        sheets.append(Sheet(name=worksheet.name, rows=_rows_to_records(raw_rows)))
    return sheets


def _read_csv(content: bytes) -> List[Sheet]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    reader = csv.reader(io.StringIO(text))
    return [Sheet(name="Sheet1", rows=_rows_to_records(reader))]


def read_workbook(content: bytes, filename: Optional[str]) -> List[Sheet]:
    """Parse an uploaded file into its sheets, dispatching on the extension."""
    extension = PurePath(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise ImportStructureError(
            f"Format file tidak didukung \"{extension or filename}\". Gunakan .xlsx, .xls atau .csv"
        )
    if not content:
        raise ImportStructureError("File kosong")

    if extension == ".xlsx":
        sheets = _read_xlsx(content)
    elif extension == ".xls":
        sheets = _read_xls(content)
    else:
        sheets = _read_csv(content)

    logger.debug("Read %d sheet(s) from %s", len(sheets), filename)
    return sheets
