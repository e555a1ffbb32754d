import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from underwriter.clock import Clock, utc_now
from underwriter.database.models import JobRecord
from underwriter.database.repositories.job_repository import JobRepository
from underwriter.logging.logger import Log
from underwriter.worker.job_runner import OUTCOME_FAILED, OUTCOME_TRANSITIONED, JobRunner
from underwriter.worker.stages import StageHandlers
from underwriter.worker.status import IN_PROGRESS_STATUSES, STAGE_ORDER
from underwriter.worker.transitions import TransitionService

TIMEOUT = "TIMEOUT"
TIMEOUT_MESSAGE = (
    "Processing timed out, please retry or contact support with reference ID {job_id}."
)

STOP_FIXED_POINT = "fixed_point"
STOP_MAX_PASSES = "max_passes"
STOP_TIME_BUDGET = "time_budget"


@dataclass
class DriverReport:
    passes: int = 0
    transitions: int = 0
    failures: int = 0
    timeouts: int = 0
    stop_reason: str | None = None

    @property
    def changes(self) -> int:
        return self.transitions + self.failures + self.timeouts


class Driver:
    """Advances jobs through the status graph until nothing moves.

    One pass = timeout guard, then every source status in stage order, one
    bounded oldest-first batch each. Passes repeat until a pass changes no
    job, the pass limit is hit, or the wall-clock budget runs out.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        handlers: StageHandlers,
        runner: JobRunner,
        transitions: TransitionService,
        *,
        batch_size: int = 25,
        max_passes: int = 10,
        time_budget_seconds: float = 50.0,
        timeout_minutes: int = 60,
        clock: Clock = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._job_repo = job_repo
        self._handlers = handlers
        self._runner = runner
        self._transitions = transitions
        self._batch_size = batch_size
        self._max_passes = max_passes
        self._time_budget_seconds = time_budget_seconds
        self._timeout_minutes = timeout_minutes
        self._clock = clock
        self._monotonic = monotonic

    def run(self) -> DriverReport:
        report = DriverReport()
        deadline = self._monotonic() + self._time_budget_seconds
        while True:
            if report.passes >= self._max_passes:
                report.stop_reason = STOP_MAX_PASSES
                break
            if self._monotonic() >= deadline:
                report.stop_reason = STOP_TIME_BUDGET
                break
            before = report.changes
            report.passes += 1
            self._run_pass(report, deadline)
            if report.changes == before:
                report.stop_reason = STOP_FIXED_POINT
                break

        Log.info(
            f"Driver run finished after {report.passes} passes ({report.stop_reason}): "
            f"{report.transitions} transitions, {report.failures} failures, "
            f"{report.timeouts} timeouts"
        )
        return report

    def _run_pass(self, report: DriverReport, deadline: float) -> None:
        report.timeouts += self.fail_timed_out_jobs()
        for source_status in STAGE_ORDER:
            if self._monotonic() >= deadline:
                return
            handler = self._handlers.for_status(source_status)
            for job in self._job_repo.fetch_batch(source_status, self._batch_size):
                outcome = self._runner.run(job, handler)
                if outcome == OUTCOME_TRANSITIONED:
                    report.transitions += 1
                elif outcome == OUTCOME_FAILED:
                    report.failures += 1

    def fail_timed_out_jobs(self) -> int:
        """Fail in-progress jobs whose anchor is older than the timeout threshold."""
        threshold = timedelta(minutes=self._timeout_minutes)
        now = self._clock()
        timed_out = 0
        for job in self._job_repo.fetch_in_statuses(list(IN_PROGRESS_STATUSES)):
            anchor = self._anchor(job)
            if anchor is None or now - anchor <= threshold:
                continue
            Log.warning(
                f"Job exceeded {self._timeout_minutes} minutes in {job.status}", job_id=job.id
            )
            if self._transitions.fail(
                job,
                TIMEOUT,
                TIMEOUT_MESSAGE.format(job_id=job.id),
                meta={
                    "reason": "timeout",
                    "anchor": anchor.isoformat(),
                    "threshold_minutes": self._timeout_minutes,
                },
            ):
                timed_out += 1
        return timed_out

    @staticmethod
    def _anchor(job: JobRecord) -> datetime | None:
        return job.started_at or job.created_at
