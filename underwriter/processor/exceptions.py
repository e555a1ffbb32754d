class ProcessorError(Exception):
    """Base exception for all processor-related errors."""

    error_code = "PROCESSING_ERROR"


class UnsupportedStorageError(ProcessorError):
    """Raised when a file's storage locator uses an unknown scheme."""


class FileReadError(ProcessorError):
    """Raised when a file cannot be read from storage."""
