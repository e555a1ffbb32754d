class ServiceError(Exception):
    """Base exception for outbound service calls."""

    error_code = "PROCESSING_ERROR"


class ParseServiceError(ServiceError):
    """Raised when the document parsing service fails or answers badly."""


class ReportServiceError(ServiceError):
    """Raised when the report generation service fails or answers badly."""

    error_code = "REPORT_FAILED"
