from underwriter.extraction.base import BaseStructuredExtractor
from underwriter.extraction.models import ExtractionSource, RentRollResult, T12Result
from underwriter.extraction.rent_roll import (
    OcrTableRentRollExtractor,
    RentRollParser,
    SpreadsheetRentRollExtractor,
)
from underwriter.extraction.t12 import OcrTableT12Extractor, SpreadsheetT12Extractor, T12Parser

__all__ = [
    "BaseStructuredExtractor",
    "ExtractionSource",
    "OcrTableRentRollExtractor",
    "OcrTableT12Extractor",
    "RentRollParser",
    "RentRollResult",
    "SpreadsheetRentRollExtractor",
    "SpreadsheetT12Extractor",
    "T12Parser",
    "T12Result",
]
