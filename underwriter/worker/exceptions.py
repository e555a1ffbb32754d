class PipelineError(Exception):
    """Base exception for job state machine errors."""

    error_code = "PROCESSING_ERROR"


class IllegalTransitionError(PipelineError):
    """Raised when a status change is not an edge of the job status graph."""
