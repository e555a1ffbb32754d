from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from underwriter.database.artifacts import BUCKET_SYSTEM, build_storage_locator
from underwriter.database.connection import get_connection
from underwriter.database.exceptions import DuplicateArtifactError
from underwriter.database.models import ArtifactRecord

_SELECT = """
    SELECT id, job_id, user_id, type, bucket, storage_locator, payload, created_at
    FROM analysis_artifacts
"""


class ArtifactRepository:
    """Append-only access to the analysis_artifacts table.

    Artifacts are never updated or deleted; their presence doubles as the
    idempotency marker for side effects.
    """

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
        """Append an artifact row.

        Raises:
            DuplicateArtifactError: if a uniquely-indexed artifact already exists.
        """
        locator = build_storage_locator(job_id, artifact_type, created_at, file_id)
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO analysis_artifacts
                            (job_id, user_id, type, bucket, storage_locator,
                             payload, created_at)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        RETURNING id
                        """,
                        (
                            job_id,
                            user_id,
                            artifact_type,
                            bucket,
                            locator,
                            Jsonb(payload),
                            created_at,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise DuplicateArtifactError(
                f"Artifact {artifact_type} already exists for job {job_id}"
            ) from exc

        return ArtifactRecord(
            id=str(row[0]),
            job_id=job_id,
            type=artifact_type,
            bucket=bucket,
            storage_locator=locator,
            payload=payload,
            user_id=user_id,
            created_at=created_at,
        )

    def exists(self, job_id: str, artifact_type: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM analysis_artifacts WHERE job_id = %s AND type = %s LIMIT 1",
                    (job_id, artifact_type),
                )
                row = cur.fetchone()
        return row is not None

    def latest(self, job_id: str, artifact_type: str) -> ArtifactRecord | None:
        """Most recent artifact of a type for the job, or None."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    _SELECT
                    + "WHERE job_id = %s AND type = %s ORDER BY created_at DESC LIMIT 1",
                    (job_id, artifact_type),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return self._to_record(row)

    def latest_for_file(
        self, job_id: str, artifact_type: str, file_id: str
    ) -> ArtifactRecord | None:
        """Most recent artifact of a type whose payload refers to `file_id`."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    _SELECT
                    + """
                    WHERE job_id = %s AND type = %s AND payload ->> 'file_id' = %s
                    ORDER BY created_at DESC LIMIT 1
                    """,
                    (job_id, artifact_type, file_id),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return self._to_record(row)

    def list_for_job(
        self, job_id: str, artifact_type: str | None = None
    ) -> list[ArtifactRecord]:
        """All artifacts of the job in creation order, optionally filtered by type."""
        query = _SELECT + "WHERE job_id = %s"
        params: list[Any] = [job_id]
        if artifact_type is not None:
            query += " AND type = %s"
            params.append(artifact_type)
        query += " ORDER BY created_at ASC, id ASC"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: dict[str, Any]) -> ArtifactRecord:
        return ArtifactRecord(
            id=str(row["id"]),
            job_id=str(row["job_id"]),
            type=row["type"],
            bucket=row["bucket"],
            storage_locator=row["storage_locator"],
            payload=row["payload"] or {},
            user_id=str(row["user_id"]) if row["user_id"] is not None else None,
            created_at=row["created_at"],
        )
