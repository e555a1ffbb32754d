"""Rent roll extraction: per-unit rows, unit mix and occupancy."""

import math
from collections.abc import Callable, Sequence
from typing import ClassVar

from underwriter.classification.models import RENT_ROLL
from underwriter.classification.text import contains_word
from underwriter.extraction.base import BaseStructuredExtractor
from underwriter.extraction.cells import (
    Row,
    cell_at,
    cell_text,
    first_text,
    format_count,
    is_blank_row,
    normalize_label,
)
from underwriter.extraction.exceptions import RentRollParseError
from underwriter.extraction.models import (
    METHOD_CSV,
    METHOD_TEXTRACT_TABLES,
    METHOD_XLSX,
    ExtractionSource,
    RentRollResult,
    RentRollUnit,
    UnitMixEntry,
)
from underwriter.extraction.numbers import parse_numeric
from underwriter.extraction.spreadsheet import is_csv, read_rows


class RentRollParser:
    """Heuristics shared by the spreadsheet and OCR-table rent roll extractors."""

    HEADER_TOKENS: ClassVar[tuple[str, ...]] = (
        "unit", "apt", "suite", "bed", "bath", "rent",
        "market", "sqft", "sf", "occup", "status", "tenant",
    )

    # Order matters: specific fields claim their columns before generic ones.
    FIELD_SYNONYMS: ClassVar[dict[str, tuple[str, ...]]] = {
        "market_rent": ("market rent", "market", "asking rent"),
        "in_place_rent": (
            "in place rent",
            "current rent",
            "actual rent",
            "contract rent",
            "rent",
        ),
        "unit_type": ("unit type", "type", "layout", "floor plan", "plan"),
        "unit": ("unit", "unit number", "unit #", "unit no", "unit id", "apt", "apartment", "suite"),
        "beds": ("beds", "bed", "bedrooms", "br"),
        "baths": ("baths", "bath", "bathrooms", "ba"),
        "sqft": ("sqft", "sq ft", "square feet", "sf"),
        "status": ("status", "occupancy", "occupied", "lease status"),
    }
    FIELDS: ClassVar[tuple[str, ...]] = (
        "unit", "unit_type", "beds", "baths", "sqft", "in_place_rent", "market_rent", "status",
    )
    ROW_DEFINING_FIELDS: ClassVar[tuple[str, ...]] = (
        "unit", "unit_type", "beds", "sqft", "in_place_rent", "market_rent",
    )
    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]] = ("unit", "in_place_rent")

    OCCUPIED: ClassVar[frozenset[str]] = frozenset({"occupied", "occ", "leased", "current"})
    VACANT: ClassVar[frozenset[str]] = frozenset({"vacant", "vac", "vacant ready", "unoccupied"})
    YES: ClassVar[frozenset[str]] = frozenset({"yes", "y", "x", "true"})
    NO: ClassVar[frozenset[str]] = frozenset({"no", "n", "false"})

    def header_score(self, row: Row) -> int:
        joined = " ".join(normalize_label(cell) for cell in row)
        return sum(1 for token in self.HEADER_TOKENS if token in joined)

    def find_header_row(self, rows: Sequence[Row], scan_rows: int) -> tuple[int, int]:
        """Index and score of the best-scoring row among the first `scan_rows`."""
        best_index, best_score = 0, 0
        for index, row in enumerate(rows[:scan_rows]):
            score = self.header_score(row)
            if score > best_score:
                best_index, best_score = index, score
        return best_index, best_score

    def map_columns(self, header: Row) -> dict[str, int]:
        """Map fields to column indexes: exact header matches, then whole words."""
        labels = [normalize_label(cell) for cell in header]
        mapping: dict[str, int] = {}
        claimed: set[int] = set()

        for matches in (
            lambda label, synonym: label == synonym,
            contains_word,
        ):
            for field_name, synonyms in self.FIELD_SYNONYMS.items():
                if field_name in mapping:
                    continue
                index = self._find_column(labels, synonyms, claimed, matches)
                if index is not None:
                    mapping[field_name] = index
                    claimed.add(index)
        return mapping

    @staticmethod
    def _find_column(
        labels: list[str],
        synonyms: tuple[str, ...],
        claimed: set[int],
        matches: Callable[[str, str], bool],
    ) -> int | None:
        for synonym in synonyms:
            for index, label in enumerate(labels):
                if index in claimed or not label:
                    continue
                if matches(label, synonym):
                    return index
        return None

    def parse(
        self,
        rows: Sequence[Row],
        header_index: int,
        *,
        method: str,
        with_confidence: bool,
    ) -> RentRollResult:
        """Build the rent roll from the rows below `header_index`.

        Raises:
            RentRollParseError: if no unit rows are found.
        """
        header = rows[header_index]
        columns = self.map_columns(header)
        data_rows = [
            row for row in rows[header_index + 1:] if self._is_unit_row(row, columns)
        ]
        if not data_rows:
            raise RentRollParseError("No unit rows found below the header row")

        units = [self._build_unit(row, columns) for row in data_rows]
        total_units = len(units)
        status_header = normalize_label(cell_at(header, columns.get("status")))

        warnings = [f"missing_{name}" for name in self.REQUIRED_COLUMNS if name not in columns]
        has_rent = any(unit.in_place_rent is not None for unit in units)
        has_unit_id = any(unit.unit for unit in units)
        if not has_rent and "missing_in_place_rent" not in warnings:
            warnings.append("missing_in_place_rent")
        if not has_unit_id:
            warnings.append("missing_unit_identifier")

        confidence: float | None = None
        if with_confidence:
            secondary = (
                has_unit_id
                or any(unit.beds is not None or unit.status for unit in units)
                or any(unit.market_rent is not None for unit in units)
            )
            confidence = 0.95 if has_rent and secondary else 0.5

        return RentRollResult(
            method=method,
            confidence=confidence,
            total_units=total_units,
            unit_mix=self._unit_mix(units),
            occupancy=self._occupancy(units, "status" in columns, status_header),
            units=units,
            column_map={
                name: cell_text(header[columns[name]]) if name in columns else None
                for name in self.FIELDS
            },
            parse_warnings=warnings,
        )

    def _is_unit_row(self, row: Row, columns: dict[str, int]) -> bool:
        if is_blank_row(row):
            return False
        if normalize_label(first_text(row)).startswith("total"):
            return False
        defining = [columns[name] for name in self.ROW_DEFINING_FIELDS if name in columns]
        if not defining:
            return True
        return any(cell_text(cell_at(row, index)) for index in defining)

    @staticmethod
    def _build_unit(row: Row, columns: dict[str, int]) -> RentRollUnit:
        def text(name: str) -> str | None:
            return cell_text(cell_at(row, columns.get(name))) or None

        def number(name: str) -> float | None:
            return parse_numeric(cell_at(row, columns.get(name)))

        unit_type = text("unit_type")
        beds = number("beds")
        if beds is None and unit_type and any(
            word in unit_type.lower() for word in ("studio", "bachelor")
        ):
            beds = 0.0
        return RentRollUnit(
            unit=text("unit"),
            unit_type=unit_type,
            beds=beds,
            baths=number("baths"),
            sqft=number("sqft"),
            in_place_rent=number("in_place_rent"),
            market_rent=number("market_rent"),
            status=text("status"),
        )

    @staticmethod
    def _mix_key(unit: RentRollUnit) -> str | None:
        if unit.unit_type:
            return unit.unit_type
        if unit.beds is None:
            return None
        if unit.beds == 0:
            return "Studio"
        if unit.baths is not None:
            return f"{format_count(unit.beds)} Bed / {format_count(unit.baths)} Bath"
        return f"{format_count(unit.beds)} Bed"

    def _unit_mix(self, units: list[RentRollUnit]) -> list[UnitMixEntry]:
        counts: dict[str, int] = {}
        rents: dict[str, list[float]] = {}
        for unit in units:
            key = self._mix_key(unit)
            if key is None:
                continue
            counts[key] = counts.get(key, 0) + 1
            if unit.in_place_rent is not None:
                rents.setdefault(key, []).append(unit.in_place_rent)

        mix = []
        for key, count in counts.items():
            values = rents.get(key)
            average = math.floor(sum(values) / len(values) + 0.5) if values else None
            mix.append(UnitMixEntry(unit_type=key, count=count, current_rent=average))
        return mix

    def _occupancy(
        self, units: list[RentRollUnit], has_status: bool, status_header: str
    ) -> float | None:
        """occupied / total, or None unless every status cell resolves."""
        if not has_status:
            return None
        yes_no_column = status_header in ("occupied", "occupancy")
        occupied = 0
        for unit in units:
            value = normalize_label(unit.status)
            if value in self.OCCUPIED or (yes_no_column and value in self.YES):
                occupied += 1
            elif value in self.VACANT or (yes_no_column and value in self.NO):
                continue
            else:
                return None
        return round(occupied / len(units), 2)


class SpreadsheetRentRollExtractor(BaseStructuredExtractor):
    """Rent roll from an .xlsx workbook or CSV file."""

    doc_type = RENT_ROLL
    HEADER_SCAN_ROWS = 15

    def __init__(self, parser: RentRollParser | None = None) -> None:
        self._parser = parser or RentRollParser()

    def extract(self, source: ExtractionSource) -> RentRollResult:
        rows = read_rows(source.data, source.filename, source.mime_type)
        header_index, _ = self._parser.find_header_row(rows, self.HEADER_SCAN_ROWS)
        method = METHOD_CSV if is_csv(source.filename, source.mime_type) else METHOD_XLSX
        return self._parser.parse(rows, header_index, method=method, with_confidence=True)


class OcrTableRentRollExtractor(BaseStructuredExtractor):
    """Rent roll from tables detected in a scanned PDF or image."""

    doc_type = RENT_ROLL
    HEADER_SCAN_ROWS = 3
    MIN_HEADER_SCORE = 3

    def __init__(self, parser: RentRollParser | None = None) -> None:
        self._parser = parser or RentRollParser()

    def extract(self, source: ExtractionSource) -> RentRollResult:
        best: tuple[int, list[list[str]], int] | None = None
        for table in source.tables:
            header_index, score = self._parser.find_header_row(table.rows, self.HEADER_SCAN_ROWS)
            if score < self.MIN_HEADER_SCORE:
                continue
            if best is None or score > best[0]:
                best = (score, table.rows, header_index)

        if best is None:
            raise RentRollParseError("No rent roll table detected in extracted tables")
        _, rows, header_index = best
        return self._parser.parse(
            rows, header_index, method=METHOD_TEXTRACT_TABLES, with_confidence=False
        )
