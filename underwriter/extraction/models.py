from dataclasses import asdict, dataclass, field
from typing import Any

from underwriter.tables.models import TableMatrix

METHOD_XLSX = "xlsx"
METHOD_CSV = "csv"
METHOD_TEXTRACT_TABLES = "textract_tables"


@dataclass(frozen=True)
class ExtractionSource:
    """What an extractor reads: raw spreadsheet bytes or previously detected tables."""

    filename: str
    mime_type: str
    data: bytes = b""
    tables: list[TableMatrix] = field(default_factory=list)


@dataclass
class RentRollUnit:
    unit: str | None = None
    unit_type: str | None = None
    beds: float | None = None
    baths: float | None = None
    sqft: float | None = None
    in_place_rent: float | None = None
    market_rent: float | None = None
    status: str | None = None


@dataclass
class UnitMixEntry:
    unit_type: str
    count: int
    current_rent: int | None = None


@dataclass
class RentRollResult:
    method: str
    confidence: float | None
    total_units: int
    unit_mix: list[UnitMixEntry]
    occupancy: float | None
    units: list[RentRollUnit]
    column_map: dict[str, str | None]
    parse_warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "confidence": self.confidence,
            "total_units": self.total_units,
            "unit_mix": [asdict(entry) for entry in self.unit_mix],
            "occupancy": self.occupancy,
            "units": [asdict(unit) for unit in self.units],
            "column_map": dict(self.column_map),
            "parse_warnings": list(self.parse_warnings),
        }


@dataclass
class T12Result:
    method: str
    confidence: float | None
    gross_potential_rent: float | None
    effective_gross_income: float | None
    total_operating_expenses: float | None
    net_operating_income: float | None
    column_map: dict[str, str | None]
    parse_warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)
