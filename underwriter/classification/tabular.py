import re
from collections.abc import Sequence
from typing import ClassVar

from underwriter.classification.models import RENT_ROLL, T12, UNKNOWN, TabularDetection
from underwriter.classification.text import compact_text
from underwriter.extraction.numbers import is_numeric


class TabularDocTypeDetector:
    """Scores a spreadsheet's header row and sample rows as rent roll or T12.

    Each family has a fixed set of boolean signals; a family wins with at least
    MIN_SCORE signals and a strict lead over the other.
    """

    MIN_SCORE = 3
    SAMPLE_ROWS = 25

    UNIT_HEADERS: ClassVar[tuple[str, ...]] = ("unit", "apt", "suite", "apartment", "unitid")
    RENT_HEADERS: ClassVar[tuple[str, ...]] = ("inplacerent", "currentrent", "actualrent", "rent")
    MARKET_HEADERS: ClassVar[tuple[str, ...]] = ("marketrent", "askingrent", "market")
    STATUS_HEADERS: ClassVar[tuple[str, ...]] = ("status", "occupied", "vacant", "occupancy")
    FINANCE_HEADERS: ClassVar[tuple[str, ...]] = (
        "noi",
        "netoperatingincome",
        "effectivegrossincome",
        "egi",
        "grosspotentialrent",
        "gpr",
        "operatingexpenses",
        "opex",
    )
    EXPENSE_HEADERS: ClassVar[tuple[str, ...]] = (
        "taxes",
        "insurance",
        "payroll",
        "repairs",
        "utilities",
        "management",
        "admin",
    )
    PERIOD_HEADERS: ClassVar[tuple[str, ...]] = (
        "jan", "feb", "mar", "apr", "may", "jun",
        "jul", "aug", "sep", "oct", "nov", "dec",
        "q1", "q2", "q3", "q4",
    )

    _UNIT_LIKE_RE: ClassVar[re.Pattern[str]] = re.compile(
        r"^(?:[a-z]?\d{1,4}[a-z]?|\d{1,4}-\d{1,4}|[a-z]{1,3}-?\d{1,4})$", re.IGNORECASE
    )
    _YEAR_MONTH_RE: ClassVar[re.Pattern[str]] = re.compile(r"\b\d{4}[/-]\d{1,2}\b")

    def detect(
        self, header: Sequence[object], rows: Sequence[Sequence[object]]
    ) -> TabularDetection:
        """Score `header` plus up to SAMPLE_ROWS data rows."""
        headers = [compact_text(cell) for cell in header]
        raw_headers = [str(cell or "").strip().lower() for cell in header]
        sample = [list(row) for row in rows[: self.SAMPLE_ROWS]]

        rent_roll_signals = {
            "unit_identifier_header": self._header_has_any(headers, self.UNIT_HEADERS),
            "rent_header": self._header_has_any(headers, self.RENT_HEADERS),
            "market_header": self._header_has_any(headers, self.MARKET_HEADERS),
            "status_header": self._header_has_any(headers, self.STATUS_HEADERS),
            "unit_like_values": self._has_unit_like_values(sample),
            "row_count_signal": len(sample) >= 8,
        }
        t12_signals = {
            "finance_total_header": self._header_has_any(headers, self.FINANCE_HEADERS),
            "expense_line_header": self._header_has_any(headers, self.EXPENSE_HEADERS),
            "month_or_period_header": self._header_has_any(headers, self.PERIOD_HEADERS)
            or any(self._YEAR_MONTH_RE.search(h) for h in raw_headers),
            "line_item_numeric_pattern": self._has_line_item_rows(sample),
        }

        rent_roll_score = sum(rent_roll_signals.values())
        t12_score = sum(t12_signals.values())
        doc_type = UNKNOWN
        if rent_roll_score >= self.MIN_SCORE and rent_roll_score > t12_score:
            doc_type = RENT_ROLL
        elif t12_score >= self.MIN_SCORE and t12_score > rent_roll_score:
            doc_type = T12

        return TabularDetection(
            doc_type=doc_type,
            rent_roll_score=rent_roll_score,
            t12_score=t12_score,
            signals={RENT_ROLL: rent_roll_signals, T12: t12_signals},
        )

    @staticmethod
    def _header_has_any(headers: list[str], terms: tuple[str, ...]) -> bool:
        return any(term in header for header in headers if header for term in terms)

    def _has_unit_like_values(self, rows: list[list[object]]) -> bool:
        if not rows:
            return False
        hits = sum(
            1
            for row in rows
            if any(self._UNIT_LIKE_RE.match(str(cell or "").strip()) for cell in row)
        )
        return hits / len(rows) >= 0.2

    @staticmethod
    def _has_line_item_rows(rows: list[list[object]]) -> bool:
        qualifying = 0
        for row in rows:
            numeric = sum(1 for cell in row if is_numeric(cell))
            text = sum(1 for cell in row if str(cell or "").strip() and not is_numeric(cell))
            if text >= 1 and numeric >= 4:
                qualifying += 1
        return qualifying >= 2
