from datetime import datetime, timezone

import pytest

from underwriter.config.capabilities import FULL_SCHEMA, StoreCapabilities
from underwriter.database.connection import get_connection
from underwriter.database.repositories.job_repository import JobRepository

FAILED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.integration
class TestJobRepositoryFetch:
    def test_fetch_batch_returns_jobs_in_status(self, seed_job) -> None:
        job = seed_job("queued")
        repo = JobRepository(FULL_SCHEMA)

        batch = repo.fetch_batch("queued", 1000)

        assert job.id in [found.id for found in batch]
        assert all(found.status == "queued" for found in batch)

    def test_fetch_in_statuses(self, seed_job) -> None:
        extracting = seed_job("extracting")
        published = seed_job("published")
        repo = JobRepository(FULL_SCHEMA)

        found = {job.id for job in repo.fetch_in_statuses(["extracting", "scoring"])}

        assert extracting.id in found
        assert published.id not in found

    def test_find_by_id_returns_none_for_unknown_job(self, integration_pool) -> None:
        repo = JobRepository(FULL_SCHEMA)
        assert repo.find_by_id("00000000-0000-0000-0000-000000000000") is None


@pytest.mark.integration
class TestJobRepositoryTransition:
    def test_transition_wins_once(self, seed_job) -> None:
        job = seed_job("queued")
        repo = JobRepository(FULL_SCHEMA)

        first = repo.transition(job.id, "queued", "extracting", started_at=FAILED_AT)
        second = repo.transition(job.id, "queued", "extracting")

        assert first is True
        assert second is False
        stored = repo.find_by_id(job.id)
        assert stored is not None
        assert stored.status == "extracting"
        assert stored.started_at == FAILED_AT

    def test_fail_sets_error_columns(self, seed_job) -> None:
        job = seed_job("rendering")
        repo = JobRepository(FULL_SCHEMA)

        assert repo.fail(
            job.id,
            "rendering",
            error_code="REPORT_FAILED",
            error_message="Processing failed",
            failed_at=FAILED_AT,
        )

        stored = repo.find_by_id(job.id)
        assert stored is not None
        assert stored.status == "failed"
        assert stored.error_code == "REPORT_FAILED"
        assert stored.failed_at == FAILED_AT

    def test_fail_loses_when_status_moved(self, seed_job) -> None:
        job = seed_job("publishing")
        repo = JobRepository(FULL_SCHEMA)

        assert not repo.fail(
            job.id, "rendering", error_code="X", error_message="x", failed_at=FAILED_AT
        )

    def test_version_one_folds_error_code_into_message(self, seed_job) -> None:
        job = seed_job("scoring")
        repo = JobRepository(StoreCapabilities.for_version(1))

        assert repo.fail(
            job.id, "scoring", error_code="TIMEOUT", error_message="timed out", failed_at=FAILED_AT
        )

        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT status, error_code, error_message, failed_at "
                    "FROM analysis_jobs WHERE id = %s",
                    (job.id,),
                )
                row = cur.fetchone()
        assert row == ("failed", None, "[TIMEOUT] timed out", None)


@pytest.mark.integration
class TestJobRepositoryMetrics:
    def test_queue_metrics_counts_statuses(self, seed_job) -> None:
        seed_job("queued")
        repo = JobRepository(FULL_SCHEMA)

        metrics = repo.queue_metrics()

        assert metrics.counts_by_status["queued"] >= 1
        assert metrics.oldest_queued_at is not None
