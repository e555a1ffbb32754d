class ClassificationError(Exception):
    """Raised when a document cannot be assigned a doc type."""

    error_code = "PROCESSING_ERROR"
