"""Reading of uploaded workbooks and CSV files into rows of cell values."""

import csv
import io
import zipfile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from underwriter.extraction.cells import is_blank_row
from underwriter.extraction.exceptions import SpreadsheetReadError

XLSX_MIME_MARKER = "spreadsheetml"
XLSX_SUFFIXES = (".xlsx", ".xlsm")


def is_csv(filename: str, mime_type: str) -> bool:
    return "csv" in (mime_type or "").lower() or (filename or "").lower().endswith(".csv")


def is_workbook(filename: str, mime_type: str) -> bool:
    return XLSX_MIME_MARKER in (mime_type or "").lower() or (
        (filename or "").lower().endswith(XLSX_SUFFIXES)
    )


def is_spreadsheet(filename: str, mime_type: str) -> bool:
    return is_csv(filename, mime_type) or is_workbook(filename, mime_type)


def read_rows(data: bytes, filename: str, mime_type: str) -> list[list[object]]:
    """Read the first worksheet (or the CSV) into non-blank rows.

    Raises:
        SpreadsheetReadError: if the file is not a readable workbook/CSV or is empty.
    """
    if is_csv(filename, mime_type):
        rows = _read_csv(data)
    elif is_workbook(filename, mime_type):
        rows = _read_workbook(data)
    else:
        raise SpreadsheetReadError(f"'{filename}' is not a spreadsheet ({mime_type})")

    rows = [row for row in rows if not is_blank_row(row)]
    if not rows:
        raise SpreadsheetReadError("Worksheet is empty")
    return rows


def _read_csv(data: bytes) -> list[list[object]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    try:
        return [list(row) for row in csv.reader(io.StringIO(text))]
    except csv.Error as exc:
        raise SpreadsheetReadError(f"CSV could not be read: {exc}") from exc


def _read_workbook(data: bytes) -> list[list[object]]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetReadError(f"Workbook could not be opened: {exc}") from exc
    try:
        if not workbook.worksheets:
            raise SpreadsheetReadError("No worksheet found")
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
