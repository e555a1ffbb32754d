import io
from collections.abc import Callable

import openpyxl
import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


def build_workbook(rows: list[list[object]]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


@pytest.fixture()
def make_workbook() -> Callable[[list[list[object]]], bytes]:
    """Build .xlsx bytes whose first sheet holds `rows`."""
    return build_workbook


@pytest.fixture()
def rent_roll_rows() -> list[list[object]]:
    """Twelve units, unit 112 vacant."""
    rows: list[list[object]] = [
        ["Unit", "Unit Type", "Beds", "Baths", "SqFt", "Market Rent", "Current Rent", "Status"]
    ]
    for number in range(101, 113):
        two_bed = number % 2 == 0
        rows.append(
            [
                str(number),
                "2BR/2BA" if two_bed else "1BR/1BA",
                2 if two_bed else 1,
                2 if two_bed else 1,
                950 if two_bed else 700,
                1600 if two_bed else 1250,
                1550 if two_bed else 1200,
                "Vacant" if number == 112 else "Occupied",
            ]
        )
    return rows


@pytest.fixture()
def rent_roll_xlsx_bytes(rent_roll_rows: list[list[object]]) -> bytes:
    return build_workbook(rent_roll_rows)


@pytest.fixture()
def t12_csv_bytes() -> bytes:
    return (
        "Line Item,T12 Total\n"
        "Gross Potential Rent,\"$240,000\"\n"
        "Vacancy Loss,\"(12,000)\"\n"
        "Effective Gross Income,\"$228,000\"\n"
        "Total Operating Expenses,\"$42,000\"\n"
        "Net Operating Income,\"$186,000\"\n"
    ).encode("utf-8")
