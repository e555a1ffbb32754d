from typing import Any

from psycopg.rows import dict_row

from underwriter.database.connection import get_connection
from underwriter.database.exceptions import RepositoryError
from underwriter.database.models import JobFileRecord


class JobFileRepository:
    """Database operations for the analysis_job_files table."""

    def list_for_job(self, job_id: str) -> list[JobFileRecord]:
        """Return every file uploaded for a job, oldest upload first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, job_id, user_id, original_filename, mime_type,
                           storage_locator, doc_type, parse_status, parse_error,
                           uploaded_at
                    FROM analysis_job_files
                    WHERE job_id = %s
                    ORDER BY uploaded_at ASC, id ASC
                    """,
                    (job_id,),
                )
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def has_pending(self, job_id: str) -> bool:
        """True when at least one upload for the job has not been processed yet."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT 1 FROM analysis_job_files
                    WHERE job_id = %s AND parse_status = 'pending'
                    LIMIT 1
                    """,
                    (job_id,),
                )
                row = cur.fetchone()
        return row is not None

    def update_doc_type(self, file_id: str, doc_type: str) -> None:
        """Set the classified doc_type of a file.

        Raises:
            RepositoryError: if no file with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE analysis_job_files SET doc_type = %s WHERE id = %s",
                    (doc_type, file_id),
                )
                if cur.rowcount == 0:
                    raise RepositoryError(f"Job file {file_id} not found")
            conn.commit()

    def update_parse_status(
        self, file_id: str, parse_status: str, parse_error: str | None = None
    ) -> None:
        """Set parse_status and parse_error of a file.

        Raises:
            RepositoryError: if no file with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE analysis_job_files
                    SET parse_status = %s,
                        parse_error = %s
                    WHERE id = %s
                    """,
                    (parse_status, parse_error, file_id),
                )
                if cur.rowcount == 0:
                    raise RepositoryError(f"Job file {file_id} not found")
            conn.commit()

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobFileRecord:
        return JobFileRecord(
            id=str(row["id"]),
            job_id=str(row["job_id"]),
            user_id=str(row["user_id"]),
            original_filename=row["original_filename"],
            mime_type=row["mime_type"],
            storage_locator=row["storage_locator"],
            doc_type=row["doc_type"],
            parse_status=row["parse_status"],
            parse_error=row["parse_error"],
            uploaded_at=row["uploaded_at"],
        )
