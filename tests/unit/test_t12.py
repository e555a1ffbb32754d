import pytest

from underwriter.extraction.exceptions import T12ParseError
from underwriter.extraction.models import ExtractionSource
from underwriter.extraction.t12 import OcrTableT12Extractor, SpreadsheetT12Extractor, T12Parser
from underwriter.tables.models import TableMatrix


def _parse(rows: list[list[object]]):
    return T12Parser().parse(rows, method="xlsx", with_confidence=True)


class TestSpreadsheetT12Extractor:
    def test_csv_summary(self, t12_csv_bytes: bytes) -> None:
        result = SpreadsheetT12Extractor().extract(
            ExtractionSource(filename="t12.csv", mime_type="text/csv", data=t12_csv_bytes)
        )

        assert result.method == "csv"
        assert result.gross_potential_rent == 240000
        assert result.effective_gross_income == 228000
        assert result.total_operating_expenses == 42000
        assert result.net_operating_income == 186000
        assert result.confidence == 0.95
        assert result.parse_warnings == []
        assert result.column_map["net_operating_income"] == "Net Operating Income"

    def test_csv_with_title_row_uses_total_column(self) -> None:
        data = (
            b"T12 Operating Statement,,,,\n"
            b"Account,Jan,Feb,Mar,Total\n"
            b"Gross Potential Rent,100,100,100,300\n"
            b"Net Operating Income,10,20,30,60\n"
        )

        result = SpreadsheetT12Extractor().extract(
            ExtractionSource(filename="Operating_Statements.csv", mime_type="text/csv", data=data)
        )

        assert result.net_operating_income == 60
        assert result.gross_potential_rent == 300


class TestT12Parser:
    def test_accounting_negative(self) -> None:
        result = _parse([["Net Operating Income", "$(1,200)"]])

        assert result.net_operating_income == -1200

    def test_uses_total_column(self) -> None:
        rows = [
            ["", "Jan 2024", "Feb 2024", "Total"],
            ["Gross Potential Rent", 100, 100, 250],
        ]

        assert _parse(rows).gross_potential_rent == 250

    def test_sums_months_without_total_column(self) -> None:
        rows = [
            ["Account", "2024-01", "2024-02", "2024-03"],
            ["Net Operating Income", 100, 200, "(50)"],
        ]

        assert _parse(rows).net_operating_income == 250

    def test_title_row_is_not_the_header(self) -> None:
        rows = [
            ["Maple Court T12", "", "", ""],
            ["Trailing 12 Operating Statement"],
            ["Account", "Jan 2024", "Feb 2024", "Mar 2024"],
            ["Net Operating Income", 10, 20, 30],
        ]

        assert _parse(rows).net_operating_income == 60

    def test_header_with_most_months_wins(self) -> None:
        rows = [
            ["Report", "YTD", "", ""],
            ["Account", "Jan", "Feb", "Total"],
            ["Gross Potential Rent", 100, 150, 250],
        ]

        assert _parse(rows).gross_potential_rent == 250

    def test_janitorial_is_not_a_month(self) -> None:
        rows = [
            ["Account", "Janitorial", "Annual"],
            ["Total Operating Expenses", 10, 40],
        ]

        assert _parse(rows).total_operating_expenses == 40

    def test_exact_label_beats_containment(self) -> None:
        rows = [
            ["Net Operating Income Before Reserves", 900],
            ["Net Operating Income", 800],
        ]

        assert _parse(rows).net_operating_income == 800

    def test_label_as_column_header_sums_column(self) -> None:
        rows = [["GPR", "EGI", "NOI"], [240000, 228000, 186000]]

        result = _parse(rows)

        assert result.gross_potential_rent == 240000
        assert result.net_operating_income == 186000

    def test_missing_items_are_null_and_warned(self) -> None:
        result = _parse([["NOI", 5000]])

        assert result.gross_potential_rent is None
        assert result.effective_gross_income is None
        assert result.confidence == 0.25
        assert "missing_gross_potential_rent" in result.parse_warnings

    def test_nothing_found(self) -> None:
        with pytest.raises(T12ParseError, match="missing_all_required_t12_fields"):
            _parse([["Property", "Maple Court"], ["Units", 12]])

    def test_no_confidence_for_ocr(self) -> None:
        result = T12Parser().parse(
            [["NOI", 1]], method="textract_tables", with_confidence=False
        )

        assert result.confidence is None


class TestOcrTableT12Extractor:
    def test_picks_operating_statement_table(self) -> None:
        tables = [
            TableMatrix(rows=[["Unit", "Rent"], ["101", "1,200"]]),
            TableMatrix(
                rows=[
                    ["Line Item", "YTD"],
                    ["Effective Gross Income", "228,000"],
                    ["Total Operating Expenses", "42,000"],
                    ["Net Operating Income", "186,000"],
                ]
            ),
        ]

        result = OcrTableT12Extractor().extract(
            ExtractionSource(filename="t12.pdf", mime_type="application/pdf", tables=tables)
        )

        assert result.method == "textract_tables"
        assert result.net_operating_income == 186000
        assert result.confidence is None

    def test_table_score_needs_period_and_metric(self) -> None:
        extractor = OcrTableT12Extractor()

        assert extractor.table_score([["Jan", "Feb"], ["Rent", "1"]]) is None
        assert extractor.table_score([["NOI", "Total"]]) is None
        assert extractor.table_score([["", "Jan", "Feb", "YTD"], ["NOI", "1", "2", "3"]]) == 4

    def test_no_candidate_table(self) -> None:
        with pytest.raises(T12ParseError, match="No T12 table"):
            OcrTableT12Extractor().extract(
                ExtractionSource(
                    filename="t12.pdf",
                    mime_type="application/pdf",
                    tables=[TableMatrix(rows=[["Unit", "Rent"]])],
                )
            )
