class ExtractionError(Exception):
    """Base exception for structured extraction failures."""

    error_code = "PROCESSING_ERROR"


class SpreadsheetReadError(ExtractionError):
    """Raised when a workbook or CSV file cannot be read into rows."""


class RentRollParseError(ExtractionError):
    """Raised when no rent roll can be read from a document."""


class T12ParseError(ExtractionError):
    """Raised when no operating statement line item can be read from a document."""
