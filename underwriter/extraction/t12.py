"""T12 (trailing twelve month operating statement) extraction."""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

from underwriter.classification.models import T12
from underwriter.classification.text import contains_word
from underwriter.extraction.base import BaseStructuredExtractor
from underwriter.extraction.cells import Row, cell_at, cell_text, normalize_label
from underwriter.extraction.exceptions import T12ParseError
from underwriter.extraction.models import (
    METHOD_CSV,
    METHOD_TEXTRACT_TABLES,
    METHOD_XLSX,
    ExtractionSource,
    T12Result,
)
from underwriter.extraction.numbers import parse_numeric
from underwriter.extraction.spreadsheet import is_csv, read_rows

MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")


@dataclass(frozen=True)
class _PeriodHeader:
    index: int
    total_column: int | None
    month_columns: tuple[int, ...]


@dataclass(frozen=True)
class _LabelMatch:
    exact: bool
    row: int
    column: int


class T12Parser:
    """Line-item scan shared by the spreadsheet and OCR-table T12 extractors.

    Value policy for a label found in row layout: the header's total column if
    there is one, else the sum of the month columns, else the first number to
    the right of the label. A label used as a column header sums its column.
    """

    LINE_ITEMS: ClassVar[dict[str, tuple[str, ...]]] = {
        "gross_potential_rent": (
            "gross potential rent",
            "gpr",
            "gross potential",
            "potential rent",
            "gross potential income",
        ),
        "effective_gross_income": (
            "effective gross income",
            "egi",
            "effective gross",
            "effective income",
        ),
        "total_operating_expenses": (
            "total operating expenses",
            "operating expenses",
            "total expenses",
            "opex",
        ),
        "net_operating_income": (
            "net operating income",
            "noi",
            "net operating",
            "net op income",
        ),
    }
    TOTAL_TOKENS: ClassVar[tuple[str, ...]] = ("total", "ytd", "t12", "t 12", "trailing 12", "annual")
    HEADER_SCAN_ROWS = 15
    MAX_CONFIDENCE = 0.95

    # Labels are normalized, so "2024-01" and "01/2024" arrive as "2024 01" and "01 2024".
    _MONTH_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"^(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
        r"|sep(?:t|tember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\b"
        r"|^\d{4} \d{1,2}\b|^\d{1,2} \d{4}\b"
    )

    def parse(
        self, rows: Sequence[Row], *, method: str, with_confidence: bool
    ) -> T12Result:
        """Scan `rows` for the four line items.

        Raises:
            T12ParseError: if none of the line items can be read.
        """
        header = self._find_period_header(rows)
        values: dict[str, float | None] = {}
        column_map: dict[str, str | None] = {}

        for key, synonyms in self.LINE_ITEMS.items():
            values[key] = None
            column_map[key] = None
            for match in self._label_matches(rows, synonyms):
                value = self._value_for(rows, match, header)
                if value is not None:
                    values[key] = value
                    column_map[key] = cell_text(rows[match.row][match.column])
                    break

        found = sum(1 for value in values.values() if value is not None)
        if found == 0:
            raise T12ParseError("missing_all_required_t12_fields")

        return T12Result(
            method=method,
            confidence=min(found / 4, self.MAX_CONFIDENCE) if with_confidence else None,
            gross_potential_rent=values["gross_potential_rent"],
            effective_gross_income=values["effective_gross_income"],
            total_operating_expenses=values["total_operating_expenses"],
            net_operating_income=values["net_operating_income"],
            column_map=column_map,
            parse_warnings=[f"missing_{key}" for key, value in values.items() if value is None],
        )

    def is_month_label(self, label: str) -> bool:
        return self._MONTH_RE.match(label) is not None

    def _find_period_header(self, rows: Sequence[Row]) -> _PeriodHeader | None:
        """Best header row in the top of the sheet: most month columns, then a total column.

        A total token in the first non-empty cell is the row label, so a title
        such as "T12 Operating Statement" never counts as a total column.
        """
        best: _PeriodHeader | None = None
        for index, row in enumerate(rows[: self.HEADER_SCAN_ROWS]):
            if any(parse_numeric(cell) is not None for cell in row):
                continue
            labels = [normalize_label(cell) for cell in row]
            filled = [i for i, label in enumerate(labels) if label]
            if len(filled) < 2:
                continue
            months = tuple(i for i in filled if self.is_month_label(labels[i]))
            total = next(
                (
                    i
                    for i in filled[1:]
                    if any(contains_word(labels[i], token) for token in self.TOTAL_TOKENS)
                    and not self._is_line_item(labels[i])
                ),
                None,
            )
            if not months and total is None:
                continue
            candidate = _PeriodHeader(index=index, total_column=total, month_columns=months)
            if best is None or self._header_rank(candidate) > self._header_rank(best):
                best = candidate
        return best

    @staticmethod
    def _header_rank(header: _PeriodHeader) -> tuple[int, bool]:
        return len(header.month_columns), header.total_column is not None

    def _is_line_item(self, label: str) -> bool:
        return any(
            contains_word(label, synonym)
            for synonyms in self.LINE_ITEMS.values()
            for synonym in synonyms
        )

    @staticmethod
    def _label_matches(rows: Sequence[Row], synonyms: tuple[str, ...]) -> list[_LabelMatch]:
        matches = []
        for row_index, row in enumerate(rows):
            for column, cell in enumerate(row):
                label = normalize_label(cell)
                if not label or parse_numeric(cell) is not None:
                    continue
                if label in synonyms:
                    matches.append(_LabelMatch(exact=True, row=row_index, column=column))
                elif any(contains_word(label, synonym) for synonym in synonyms):
                    matches.append(_LabelMatch(exact=False, row=row_index, column=column))
        return sorted(matches, key=lambda match: not match.exact)

    def _value_for(
        self, rows: Sequence[Row], match: _LabelMatch, header: _PeriodHeader | None
    ) -> float | None:
        row = rows[match.row]
        if header is not None and match.row > header.index:
            if header.total_column is not None and header.total_column != match.column:
                value = parse_numeric(cell_at(row, header.total_column))
                if value is not None:
                    return value
            month_values = [
                parse_numeric(cell_at(row, column))
                for column in header.month_columns
                if column != match.column
            ]
            numeric = [value for value in month_values if value is not None]
            if numeric:
                return sum(numeric)

        for cell in row[match.column + 1:]:
            value = parse_numeric(cell)
            if value is not None:
                return value

        column_values = [
            parse_numeric(cell_at(below, match.column)) for below in rows[match.row + 1:]
        ]
        numeric = [value for value in column_values if value is not None]
        return sum(numeric) if numeric else None


class SpreadsheetT12Extractor(BaseStructuredExtractor):
    """T12 from an .xlsx workbook or CSV file."""

    doc_type = T12

    def __init__(self, parser: T12Parser | None = None) -> None:
        self._parser = parser or T12Parser()

    def extract(self, source: ExtractionSource) -> T12Result:
        rows = read_rows(source.data, source.filename, source.mime_type)
        method = METHOD_CSV if is_csv(source.filename, source.mime_type) else METHOD_XLSX
        return self._parser.parse(rows, method=method, with_confidence=True)


class OcrTableT12Extractor(BaseStructuredExtractor):
    """T12 from the best operating statement table detected in a scanned document.

    Only the first two rows of each table are scored: one point per month,
    period and metric token present. A candidate needs at least one period
    (month or YTD/T-12) and one metric token.
    """

    doc_type = T12
    HEADER_ROWS = 2
    PERIOD_TOKENS: ClassVar[tuple[str, ...]] = ("ytd", "trailing 12", "t-12")
    METRIC_TOKENS: ClassVar[tuple[str, ...]] = (
        "noi",
        "net operating income",
        "total operating expenses",
        "effective gross income",
    )

    def __init__(self, parser: T12Parser | None = None) -> None:
        self._parser = parser or T12Parser()

    def extract(self, source: ExtractionSource) -> T12Result:
        best_rows: list[list[str]] | None = None
        best_score = -1
        for table in source.tables:
            score = self.table_score(table.rows)
            if score is not None and score > best_score:
                best_rows, best_score = table.rows, score

        if best_rows is None:
            raise T12ParseError("No T12 table detected in extracted tables")
        return self._parser.parse(best_rows, method=METHOD_TEXTRACT_TABLES, with_confidence=False)

    def table_score(self, rows: Sequence[Row]) -> int | None:
        """Header score of a table, or None when it is not a T12 candidate."""
        cells = [
            cell_text(cell).lower()
            for row in rows[: self.HEADER_ROWS]
            for cell in row
            if cell_text(cell)
        ]
        months = sum(
            1 for month in MONTHS if any(re.search(rf"\b{month}", cell) for cell in cells)
        )
        periods = sum(1 for token in self.PERIOD_TOKENS if any(token in cell for cell in cells))
        metrics = sum(
            1
            for token in self.METRIC_TOKENS
            if any(
                re.search(r"\bnoi\b", cell) if token == "noi" else token in cell
                for cell in cells
            )
        )
        if months + periods == 0 or metrics == 0:
            return None
        return months + periods + metrics
