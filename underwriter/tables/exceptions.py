class TableExtractionError(Exception):
    """Raised when a table engine cannot analyze a document."""

    error_code = "PROCESSING_ERROR"


class UnsupportedMimeTypeError(TableExtractionError):
    """Raised before any engine call when the document type cannot be analyzed."""
