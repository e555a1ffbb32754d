import time

import psycopg

from underwriter.config.settings import Settings
from underwriter.database.repositories.job_repository import JobRepository
from underwriter.logging.logger import Log
from underwriter.worker.driver import Driver, DriverReport


class Worker:
    """Poll loop: drive -> log queue metrics -> sleep."""

    def __init__(self, driver: Driver, job_repo: JobRepository, settings: Settings) -> None:
        self._driver = driver
        self._job_repo = job_repo
        self._settings = settings

    def run(self, max_runs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        With WORKER_RUN_ONCE or `max_runs` set, stop after that many driver runs.
        """
        limit = 1 if self._settings.worker_run_once else max_runs
        Log.info("Worker started")
        runs = 0
        try:
            while limit is None or runs < limit:
                report = self._try_drive()
                runs += 1
                if limit is not None and runs >= limit:
                    break
                if report is None or report.changes == 0:
                    Log.debug("No job moved, sleeping")
                    time.sleep(self._settings.worker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_drive(self) -> DriverReport | None:
        """Run the driver once and log queue metrics. Gracefully handle DB errors."""
        try:
            report = self._driver.run()
            self._log_queue_metrics()
        except psycopg.Error as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
        return report

    def _log_queue_metrics(self) -> None:
        metrics = self._job_repo.queue_metrics()
        counts = ", ".join(
            f"{name}={count}" for name, count in sorted(metrics.counts_by_status.items())
        )
        Log.info(
            f"Queue: {counts or 'empty'}; oldest queued {metrics.oldest_queued_at}, "
            f"latest failed {metrics.latest_failed_at}"
        )
