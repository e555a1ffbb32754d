import traceback

from underwriter.database.models import JobRecord
from underwriter.logging.logger import Log
from underwriter.worker.stages import StageHandler
from underwriter.worker.transitions import TransitionService

OUTCOME_TRANSITIONED = "transitioned"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"

DEFAULT_ERROR_CODE = "PROCESSING_ERROR"


class JobRunner:
    """Run one stage handler for one job, failing only that job on error."""

    def __init__(self, transitions: TransitionService) -> None:
        self._transitions = transitions

    def run(self, job: JobRecord, handler: StageHandler) -> str:
        source_status = job.status
        try:
            changed = handler(job)
        except Exception as exc:
            return self._handle_failure(job, source_status, exc)
        return OUTCOME_TRANSITIONED if changed else OUTCOME_SKIPPED

    def _handle_failure(self, job: JobRecord, source_status: str, exc: Exception) -> str:
        """Mark the job failed with the exception's error code and keep the traceback internal."""
        error_code = getattr(exc, "error_code", DEFAULT_ERROR_CODE)
        Log.exception(
            f"Stage {source_status} raised {type(exc).__name__}",
            job_id=job.id,
            error_code=error_code,
        )
        diagnostic = {
            "stage": source_status,
            "exception_class": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": "".join(traceback.format_exception(exc)),
        }
        if self._transitions.fail_with_generic_message(job, error_code, diagnostic):
            return OUTCOME_FAILED
        return OUTCOME_SKIPPED
