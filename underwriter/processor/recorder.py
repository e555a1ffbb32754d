from datetime import datetime
from typing import Any

from underwriter.clock import Clock, utc_now
from underwriter.database.artifacts import BUCKET_INTERNAL, BUCKET_SYSTEM, WORKER_EVENT
from underwriter.database.models import ArtifactRecord, JobRecord
from underwriter.database.repositories.artifact_repository import ArtifactRepository


class ArtifactRecorder:
    """Writes artifacts for a job, stamping them with the injected clock."""

    def __init__(self, artifact_repo: ArtifactRepository, clock: Clock = utc_now) -> None:
        self._artifact_repo = artifact_repo
        self._clock = clock

    @property
    def repository(self) -> ArtifactRepository:
        return self._artifact_repo

    def clock(self) -> datetime:
        return self._clock()

    def now(self) -> str:
        return self._clock().isoformat()

    def record(
        self,
        job: JobRecord,
        artifact_type: str,
        payload: dict[str, Any],
        *,
        bucket: str = BUCKET_SYSTEM,
        file_id: str | None = None,
    ) -> ArtifactRecord:
        return self._artifact_repo.insert(
            job.id,
            artifact_type,
            payload,
            created_at=self._clock(),
            user_id=job.user_id,
            bucket=bucket,
            file_id=file_id,
        )

    def worker_event(
        self, job: JobRecord, event: str, file_id: str | None = None, **details: Any
    ) -> ArtifactRecord:
        """Diagnostic event in the internal bucket."""
        payload = {"event": event, "job_id": job.id, "timestamp": self.now(), **details}
        return self.record(job, WORKER_EVENT, payload, bucket=BUCKET_INTERNAL, file_id=file_id)
