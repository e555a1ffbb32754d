from dataclasses import dataclass, field

RENT_ROLL = "rent_roll"
T12 = "t12"
OFFERING_MEMO = "offering_memo"
DEBT_TERM_SHEET = "debt_term_sheet"
CAPEX_SCOPE = "capex_scope"
OTHER = "other"
UNKNOWN = "unknown"

DOC_TYPES = (RENT_ROLL, T12, OFFERING_MEMO, DEBT_TERM_SHEET, CAPEX_SCOPE, OTHER)
REQUIRED_DOC_TYPES = (RENT_ROLL, T12)


@dataclass(frozen=True)
class Classification:
    doc_type: str
    confidence: float
    method: str


@dataclass(frozen=True)
class TabularDetection:
    """Outcome of scoring a spreadsheet's header and sample rows."""

    doc_type: str
    rent_roll_score: int
    t12_score: int
    signals: dict[str, dict[str, bool]] = field(default_factory=dict)
