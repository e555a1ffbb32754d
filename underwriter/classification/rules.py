from typing import ClassVar

from underwriter.classification.base import BaseDocumentClassifier
from underwriter.classification.models import (
    CAPEX_SCOPE,
    DEBT_TERM_SHEET,
    OFFERING_MEMO,
    OTHER,
    RENT_ROLL,
    T12,
    Classification,
)
from underwriter.classification.text import count_keyword, normalize_text


class RuleBasedClassifier(BaseDocumentClassifier):
    """Keyword scoring over the filename and text excerpt.

    The type with the most distinct keyword hits wins; ties go to the type
    declared first in KEYWORDS.
    """

    METHOD = "rules"

    KEYWORDS: ClassVar[dict[str, tuple[str, ...]]] = {
        RENT_ROLL: (
            "rent roll",
            "rentroll",
            "rr",
            "unit mix",
            "unit type",
            "schedule of rents",
        ),
        T12: (
            "t12",
            "t 12",
            "trailing 12",
            "operating statement",
            "income statement",
            "profit and loss",
            "p&l",
            "noi",
        ),
        OFFERING_MEMO: (
            "offering memorandum",
            "offering memo",
            "cim",
            "confidential information memorandum",
            "investment summary",
            "executive summary",
        ),
        DEBT_TERM_SHEET: (
            "term sheet",
            "commitment letter",
            "loan terms",
            "interest rate",
            "amortization",
            "maturity",
            "lender",
        ),
        CAPEX_SCOPE: (
            "capex",
            "scope of work",
            "sow",
            "renovation budget",
            "contractor bid",
            "estimate",
        ),
    }

    def classify(self, filename: str, excerpt: str) -> Classification:
        text = normalize_text(f"{filename} {excerpt}")
        best_type = OTHER
        best_count = 0
        for doc_type, keywords in self.KEYWORDS.items():
            count = sum(count_keyword(text, keyword) for keyword in keywords)
            if count > best_count:
                best_type = doc_type
                best_count = count

        if best_count == 0:
            return Classification(doc_type=OTHER, confidence=0.4, method=self.METHOD)
        confidence = 0.9 if best_count >= 2 else 0.7
        return Classification(doc_type=best_type, confidence=confidence, method=self.METHOD)
