from datetime import datetime
from typing import Any

from underwriter.database.artifacts import STATUS_TRANSITION
from underwriter.database.models import JobRecord
from underwriter.database.repositories.job_repository import JobRepository
from underwriter.logging.logger import Log
from underwriter.processor.recorder import ArtifactRecorder
from underwriter.worker.exceptions import IllegalTransitionError
from underwriter.worker.status import FAILED, TERMINAL_STATUSES, is_legal_transition

GENERIC_FAILURE_MESSAGE = (
    "Processing failed, please retry or contact support with reference ID {job_id}."
)


class TransitionService:
    """Compare-and-swap status changes plus their status_transition artifacts.

    A transition only counts when the conditional update changed the row;
    losing the race is not an error, it returns False and writes nothing.
    """

    def __init__(self, job_repo: JobRepository, recorder: ArtifactRecorder) -> None:
        self._job_repo = job_repo
        self._recorder = recorder

    def advance(
        self,
        job: JobRecord,
        to_status: str,
        *,
        meta: dict[str, Any] | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        """Move `job` from its current status to `to_status`.

        Raises:
            IllegalTransitionError: if the edge is not part of the status graph.
        """
        from_status = job.status
        self._check_edge(from_status, to_status)
        if not self._job_repo.transition(
            job.id, from_status, to_status, started_at=started_at, completed_at=completed_at
        ):
            Log.debug(f"Job {job.id} already left {from_status}, skipping")
            return False

        job.status = to_status
        if started_at is not None:
            job.started_at = started_at
        if completed_at is not None:
            job.completed_at = completed_at
        self._record(job, from_status, to_status, meta)
        Log.info(f"Job {job.id}: {from_status} -> {to_status}")
        return True

    def fail(
        self,
        job: JobRecord,
        error_code: str,
        error_message: str,
        *,
        meta: dict[str, Any] | None = None,
        diagnostic: dict[str, Any] | None = None,
    ) -> bool:
        """Move `job` to failed; terminal jobs are left untouched.

        `diagnostic` (exception class, message, traceback) goes to an internal
        worker_event artifact, never to the job row.
        """
        from_status = job.status
        if from_status in TERMINAL_STATUSES:
            return False
        failed_at = self._recorder.clock()
        if not self._job_repo.fail(
            job.id,
            from_status,
            error_code=error_code,
            error_message=error_message,
            failed_at=failed_at,
        ):
            Log.debug(f"Job {job.id} already left {from_status}, not failing it")
            return False

        job.status = FAILED
        job.error_code = error_code
        job.error_message = error_message
        job.failed_at = failed_at
        self._record(job, from_status, FAILED, {"error_code": error_code, **(meta or {})})
        if diagnostic is not None:
            self._recorder.worker_event(
                job, "job_failed", from_status=from_status, error_code=error_code, **diagnostic
            )
        Log.error(f"Job failed in {from_status}", job_id=job.id, error_code=error_code)
        return True

    def fail_with_generic_message(
        self, job: JobRecord, error_code: str, diagnostic: dict[str, Any]
    ) -> bool:
        return self.fail(
            job,
            error_code,
            GENERIC_FAILURE_MESSAGE.format(job_id=job.id),
            diagnostic=diagnostic,
        )

    @staticmethod
    def _check_edge(from_status: str, to_status: str) -> None:
        if not is_legal_transition(from_status, to_status):
            raise IllegalTransitionError(f"Illegal transition {from_status} -> {to_status}")

    def _record(
        self, job: JobRecord, from_status: str, to_status: str, meta: dict[str, Any] | None
    ) -> None:
        self._recorder.record(
            job,
            STATUS_TRANSITION,
            {
                "job_id": job.id,
                "from_status": from_status,
                "to_status": to_status,
                "timestamp": self._recorder.now(),
                "meta": meta or {},
            },
        )
