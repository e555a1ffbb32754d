from collections.abc import Sequence
from datetime import date, datetime

from underwriter.classification.text import normalize_text

Row = Sequence[object]


def cell_text(value: object) -> str:
    """Display text of a cell: None is empty, whole floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def normalize_label(value: object) -> str:
    """Comparable form of a header or label cell."""
    return normalize_text(cell_text(value)).rstrip(":").strip()


def is_blank_row(row: Row) -> bool:
    return all(cell_text(cell) == "" for cell in row)


def first_text(row: Row) -> str:
    for cell in row:
        text = cell_text(cell)
        if text:
            return text
    return ""


def cell_at(row: Row, index: int | None) -> object:
    if index is None or index >= len(row):
        return None
    return row[index]


def format_count(value: float) -> str:
    """2.0 -> '2', 1.5 -> '1.5'."""
    return str(int(value)) if float(value).is_integer() else str(value)
