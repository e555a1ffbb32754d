from abc import ABC, abstractmethod
from typing import ClassVar

from underwriter.extraction.models import ExtractionSource, RentRollResult, T12Result


class BaseStructuredExtractor(ABC):
    """Contract for rent roll and T12 extractors.

    Every document kind has a spreadsheet variant (reads `source.data`) and an
    OCR-table variant (reads `source.tables`) sharing one set of heuristics.
    """

    doc_type: ClassVar[str]

    @abstractmethod
    def extract(self, source: ExtractionSource) -> RentRollResult | T12Result:
        """Read structured figures from a document.

        Raises:
            ExtractionError: if nothing usable can be read. No partial result
                is fabricated.
        """
