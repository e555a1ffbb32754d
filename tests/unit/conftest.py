import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from underwriter.database.artifacts import BUCKET_SYSTEM, CREDIT_CONSUMED, build_storage_locator
from underwriter.database.exceptions import DuplicateArtifactError, RepositoryError
from underwriter.database.models import ArtifactRecord, JobFileRecord, JobRecord, QueueMetrics
from underwriter.processor.recorder import ArtifactRecorder

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that advances one millisecond per reading."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(milliseconds=1)
        return value

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class InMemoryStore:
    """Rows of the four tables plus a lock standing in for row-level atomicity."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.jobs: dict[str, JobRecord] = {}
        self.files: dict[str, JobFileRecord] = {}
        self.artifacts: list[ArtifactRecord] = []
        self.profiles: dict[str, dict[str, Any]] = {}
        self.job_repo = FakeJobRepository(self)
        self.file_repo = FakeJobFileRepository(self)
        self.artifact_repo = FakeArtifactRepository(self)
        self.profile_repo = FakeProfileRepository(self)

    def add_profile(self, owner_id: str = "owner-1", credits: int = 3, email: str | None = "owner@example.com") -> str:
        self.profiles[owner_id] = {"email": email, "report_credits": credits}
        return owner_id

    def add_job(
        self,
        status: str = "queued",
        *,
        user_id: str = "owner-1",
        property_name: str | None = "Maple Court",
        created_at: datetime = BASE_TIME,
        started_at: datetime | None = None,
        job_id: str | None = None,
    ) -> JobRecord:
        job = JobRecord(
            id=job_id or str(uuid.uuid4()),
            user_id=user_id,
            status=status,
            property_name=property_name,
            report_type="underwriting",
            created_at=created_at,
            updated_at=created_at,
            started_at=started_at,
        )
        self.jobs[job.id] = job
        return replace(job)

    def add_file(
        self,
        job: JobRecord,
        original_filename: str,
        mime_type: str,
        storage_locator: str | None = None,
        *,
        doc_type: str | None = None,
        parse_status: str = "pending",
    ) -> JobFileRecord:
        file = JobFileRecord(
            id=str(uuid.uuid4()),
            job_id=job.id,
            user_id=job.user_id,
            original_filename=original_filename,
            mime_type=mime_type,
            storage_locator=storage_locator or f"local://uploads/{job.id}/{original_filename}",
            doc_type=doc_type,
            parse_status=parse_status,
            uploaded_at=BASE_TIME + timedelta(seconds=len(self.files)),
        )
        self.files[file.id] = file
        return replace(file)

    def artifacts_of(self, job_id: str, artifact_type: str) -> list[ArtifactRecord]:
        return [a for a in self.artifacts if a.job_id == job_id and a.type == artifact_type]

    def append_artifact(
        self,
        job_id: str,
        artifact_type: str,
        payload: dict[str, Any],
        created_at: datetime,
        user_id: str | None,
        bucket: str,
        file_id: str | None = None,
    ) -> ArtifactRecord:
        if artifact_type == CREDIT_CONSUMED and self.artifacts_of(job_id, CREDIT_CONSUMED):
            raise DuplicateArtifactError(f"Artifact {artifact_type} already exists for job {job_id}")
        record = ArtifactRecord(
            id=str(uuid.uuid4()),
            job_id=job_id,
            type=artifact_type,
            bucket=bucket,
            storage_locator=build_storage_locator(job_id, artifact_type, created_at, file_id),
            payload=payload,
            user_id=user_id,
            created_at=created_at,
        )
        self.artifacts.append(record)
        return record


class FakeJobRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def fetch_batch(self, status: str, limit: int) -> list[JobRecord]:
        with self._store.lock:
            jobs = [job for job in self._store.jobs.values() if job.status == status]
        jobs.sort(key=lambda job: job.created_at)
        return [replace(job) for job in jobs[:limit]]

    def fetch_in_statuses(self, statuses: list[str]) -> list[JobRecord]:
        with self._store.lock:
            jobs = [job for job in self._store.jobs.values() if job.status in statuses]
        jobs.sort(key=lambda job: job.created_at)
        return [replace(job) for job in jobs]

    def find_by_id(self, job_id: str) -> JobRecord | None:
        job = self._store.jobs.get(job_id)
        return replace(job) if job else None

    def transition(
        self,
        job_id: str,
        from_status: str,
        to_status: str,
        *,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        changes: dict[str, Any] = {"status": to_status}
        if started_at is not None:
            changes["started_at"] = started_at
        if completed_at is not None:
            changes["completed_at"] = completed_at
        return self._update(job_id, from_status, changes)

    def fail(
        self,
        job_id: str,
        from_status: str,
        *,
        error_code: str,
        error_message: str,
        failed_at: datetime,
    ) -> bool:
        return self._update(
            job_id,
            from_status,
            {
                "status": "failed",
                "error_code": error_code,
                "error_message": error_message,
                "failed_at": failed_at,
            },
        )

    def queue_metrics(self) -> QueueMetrics:
        counts: dict[str, int] = {}
        for job in self._store.jobs.values():
            counts[job.status] = counts.get(job.status, 0) + 1
        queued = [job.created_at for job in self._store.jobs.values() if job.status == "queued"]
        failed = [job.created_at for job in self._store.jobs.values() if job.status == "failed"]
        return QueueMetrics(
            counts_by_status=counts,
            oldest_queued_at=min(queued) if queued else None,
            latest_failed_at=max(failed) if failed else None,
        )

    def _update(self, job_id: str, from_status: str, changes: dict[str, Any]) -> bool:
        with self._store.lock:
            job = self._store.jobs.get(job_id)
            if job is None or job.status != from_status:
                return False
            self._store.jobs[job_id] = replace(job, **changes)
            return True


class FakeJobFileRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def list_for_job(self, job_id: str) -> list[JobFileRecord]:
        files = [f for f in self._store.files.values() if f.job_id == job_id]
        files.sort(key=lambda f: f.uploaded_at)
        return [replace(f) for f in files]

    def has_pending(self, job_id: str) -> bool:
        return any(
            f.job_id == job_id and f.parse_status == "pending" for f in self._store.files.values()
        )

    def update_doc_type(self, file_id: str, doc_type: str) -> None:
        self._get(file_id).doc_type = doc_type

    def update_parse_status(
        self, file_id: str, parse_status: str, parse_error: str | None = None
    ) -> None:
        file = self._get(file_id)
        file.parse_status = parse_status
        file.parse_error = parse_error

    def _get(self, file_id: str) -> JobFileRecord:
        if file_id not in self._store.files:
            raise RepositoryError(f"Job file {file_id} not found")
        return self._store.files[file_id]


class FakeArtifactRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def insert(
        self,
        job_id: str,
        artifact_type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime,
        user_id: str | None = None,
        bucket: str = BUCKET_SYSTEM,
        file_id: str | None = None,
    ) -> ArtifactRecord:
        with self._store.lock:
            return self._store.append_artifact(
                job_id, artifact_type, payload, created_at, user_id, bucket, file_id
            )

    def exists(self, job_id: str, artifact_type: str) -> bool:
        return bool(self._store.artifacts_of(job_id, artifact_type))

    def latest(self, job_id: str, artifact_type: str) -> ArtifactRecord | None:
        found = self._store.artifacts_of(job_id, artifact_type)
        return found[-1] if found else None

    def latest_for_file(
        self, job_id: str, artifact_type: str, file_id: str
    ) -> ArtifactRecord | None:
        found = [
            a
            for a in self._store.artifacts_of(job_id, artifact_type)
            if a.payload.get("file_id") == file_id
        ]
        return found[-1] if found else None

    def list_for_job(
        self, job_id: str, artifact_type: str | None = None
    ) -> list[ArtifactRecord]:
        return [
            a
            for a in self._store.artifacts
            if a.job_id == job_id and (artifact_type is None or a.type == artifact_type)
        ]


class FakeProfileRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_credit_balance(self, owner_id: str) -> int | None:
        profile = self._store.profiles.get(owner_id)
        return None if profile is None else profile["report_credits"]

    def get_email(self, owner_id: str) -> str | None:
        profile = self._store.profiles.get(owner_id)
        return None if profile is None else profile["email"]

    def consume_credit(
        self,
        owner_id: str,
        observed_balance: int,
        job_id: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> bool:
        with self._store.lock:
            profile = self._store.profiles.get(owner_id)
            if profile is None or profile["report_credits"] != observed_balance:
                return False
            self._store.append_artifact(
                job_id, CREDIT_CONSUMED, payload, created_at, owner_id, BUCKET_SYSTEM
            )
            profile["report_credits"] = observed_balance - 1
            return True


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def recorder(store: InMemoryStore, clock: FakeClock) -> ArtifactRecorder:
    return ArtifactRecorder(store.artifact_repo, clock=clock)
