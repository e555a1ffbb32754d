from dataclasses import dataclass
from typing import Protocol

from underwriter.billing.exceptions import CreditRaceError
from underwriter.database.artifacts import CREDIT_CONSUMED, CREDIT_FAILED
from underwriter.database.exceptions import DuplicateArtifactError
from underwriter.database.models import JobRecord
from underwriter.database.repositories.profile_repository import ProfileRepository
from underwriter.logging.logger import Log
from underwriter.processor.recorder import ArtifactRecorder

CREDIT_OK = "ok"
CREDIT_SKIPPED = "skipped"
CREDIT_FAILED_STATUS = "failed"

INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"


class JobFailer(Protocol):
    def fail(self, job: JobRecord, error_code: str, error_message: str) -> bool: ...


@dataclass(frozen=True)
class CreditResult:
    status: str
    error: str | None = None


class CreditLedger:
    """Consumes exactly one report credit per job.

    The credit_consumed artifact is the idempotency marker; the balance is
    decremented with a compare-and-swap on the observed value, in the same
    transaction that writes the marker.
    """

    def __init__(
        self,
        profile_repo: ProfileRepository,
        recorder: ArtifactRecorder,
        job_failer: JobFailer,
    ) -> None:
        self._profile_repo = profile_repo
        self._recorder = recorder
        self._job_failer = job_failer

    def consume_credit_once(self, job: JobRecord) -> CreditResult:
        """Charge the job owner one credit unless the job was already charged.

        Raises:
            CreditRaceError: if the balance changed between read and decrement.
        """
        if self._recorder.repository.exists(job.id, CREDIT_CONSUMED):
            return CreditResult(status=CREDIT_SKIPPED)

        balance = self._profile_repo.get_credit_balance(job.user_id)
        if balance is None or balance < 1:
            return self._insufficient(job, balance)

        payload = {
            "job_id": job.id,
            "before": balance,
            "after": balance - 1,
            "timestamp": self._recorder.now(),
        }
        try:
            consumed = self._profile_repo.consume_credit(
                job.user_id, balance, job.id, payload, self._recorder.clock()
            )
        except DuplicateArtifactError:
            Log.info(f"Credit for job {job.id} was consumed by a concurrent worker")
            return CreditResult(status=CREDIT_SKIPPED)

        if not consumed:
            raise CreditRaceError(
                f"Credit balance of {job.user_id} changed while charging job {job.id}"
            )
        Log.info(f"Consumed one credit for job {job.id} ({balance} -> {balance - 1})")
        return CreditResult(status=CREDIT_OK)

    def _insufficient(self, job: JobRecord, balance: int | None) -> CreditResult:
        message = "Insufficient credits"
        Log.warning(f"Job {job.id}: {message} (balance {balance})")
        if not self._job_failer.fail(job, INSUFFICIENT_CREDITS, message):
            return CreditResult(status=CREDIT_FAILED_STATUS, error=message)
        self._recorder.record(
            job,
            CREDIT_FAILED,
            {
                "job_id": job.id,
                "balance": balance,
                "error_code": INSUFFICIENT_CREDITS,
                "error_message": message,
                "timestamp": self._recorder.now(),
            },
        )
        return CreditResult(status=CREDIT_FAILED_STATUS, error=message)
