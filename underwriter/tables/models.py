from dataclasses import dataclass, field
from typing import Any


@dataclass
class TableMatrix:
    """A rectangular grid of cell text with a parallel grid of confidences.

    `confidence[r][c]` is None when the engine did not report one for that cell.
    """

    rows: list[list[str]] = field(default_factory=list)
    confidence: list[list[float | None]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def to_dict(self) -> dict[str, Any]:
        return {"rows": self.rows, "confidence_by_cell": self.confidence}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableMatrix":
        rows = [[str(cell) for cell in row] for row in data.get("rows") or []]
        confidence = data.get("confidence_by_cell") or [
            [None] * len(row) for row in rows
        ]
        return cls(rows=rows, confidence=confidence)
