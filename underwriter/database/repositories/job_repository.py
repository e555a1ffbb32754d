from datetime import datetime
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row

from underwriter.config.capabilities import StoreCapabilities
from underwriter.database.connection import get_connection
from underwriter.database.models import JobRecord, QueueMetrics

_BASE_COLUMNS = (
    "id",
    "user_id",
    "status",
    "property_name",
    "report_type",
    "error_message",
    "created_at",
    "updated_at",
    "started_at",
)


class JobRepository:
    """Database operations for the analysis_jobs table.

    Every status change is a conditional update keyed on the expected current
    status; callers learn whether they won the transition from the return value.
    """

    def __init__(self, capabilities: StoreCapabilities) -> None:
        self._capabilities = capabilities
        columns = list(_BASE_COLUMNS)
        if capabilities.has_error_code:
            columns.append("error_code")
        if capabilities.has_lifecycle_timestamps:
            columns.extend(("failed_at", "completed_at"))
        self._columns = tuple(columns)

    def fetch_batch(self, status: str, limit: int) -> list[JobRecord]:
        """Return up to `limit` jobs in `status`, oldest first."""
        query = sql.SQL(
            "SELECT {columns} FROM analysis_jobs WHERE status = %s "
            "ORDER BY created_at ASC LIMIT %s"
        ).format(columns=self._column_list())
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (status, limit))
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def fetch_in_statuses(self, statuses: list[str]) -> list[JobRecord]:
        """Return every job currently in one of `statuses`."""
        query = sql.SQL(
            "SELECT {columns} FROM analysis_jobs WHERE status = ANY(%s) "
            "ORDER BY created_at ASC"
        ).format(columns=self._column_list())
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (statuses,))
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def find_by_id(self, job_id: str) -> JobRecord | None:
        query = sql.SQL("SELECT {columns} FROM analysis_jobs WHERE id = %s").format(
            columns=self._column_list()
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (job_id,))
                row = cur.fetchone()
        if row is None:
            return None
        return self._to_record(row)

    def transition(
        self,
        job_id: str,
        from_status: str,
        to_status: str,
        *,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        """Move a job to `to_status` only if it is still in `from_status`.

        Returns:
            True when this call changed the row, False when another worker
            already moved it.
        """
        assignments: dict[str, Any] = {"status": to_status}
        if started_at is not None:
            assignments["started_at"] = started_at
        if completed_at is not None and self._capabilities.has_lifecycle_timestamps:
            assignments["completed_at"] = completed_at
        return self._conditional_update(job_id, from_status, assignments)

    def fail(
        self,
        job_id: str,
        from_status: str,
        *,
        error_code: str,
        error_message: str,
        failed_at: datetime,
    ) -> bool:
        """Conditionally move a job to 'failed' with its error details."""
        assignments: dict[str, Any] = {"status": "failed"}
        if self._capabilities.has_error_code:
            assignments["error_code"] = error_code
            assignments["error_message"] = error_message
        else:
            assignments["error_message"] = f"[{error_code}] {error_message}"
        if self._capabilities.has_lifecycle_timestamps:
            assignments["failed_at"] = failed_at
        return self._conditional_update(job_id, from_status, assignments)

    def queue_metrics(self) -> QueueMetrics:
        """Counts by status plus the oldest queued and latest failed job."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT status, count(*) FROM analysis_jobs GROUP BY status")
                counts = {status: int(count) for status, count in cur.fetchall()}
                cur.execute(
                    "SELECT min(created_at) FROM analysis_jobs WHERE status = 'queued'"
                )
                oldest_row = cur.fetchone()
                cur.execute(
                    "SELECT max(created_at) FROM analysis_jobs WHERE status = 'failed'"
                )
                failed_row = cur.fetchone()
        return QueueMetrics(
            counts_by_status=counts,
            oldest_queued_at=oldest_row[0] if oldest_row else None,
            latest_failed_at=failed_row[0] if failed_row else None,
        )

    def _conditional_update(
        self, job_id: str, from_status: str, assignments: dict[str, Any]
    ) -> bool:
        set_clause = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in assignments
        )
        query = sql.SQL(
            "UPDATE analysis_jobs SET {assignments}, updated_at = NOW() "
            "WHERE id = %s AND status = %s"
        ).format(assignments=set_clause)
        params = [*assignments.values(), job_id, from_status]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                affected = cur.rowcount
            conn.commit()
        return affected == 1

    def _column_list(self) -> sql.Composable:
        return sql.SQL(", ").join(sql.Identifier(column) for column in self._columns)

    @staticmethod
    def _to_record(row: dict[str, Any]) -> JobRecord:
        return JobRecord(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            status=row["status"],
            property_name=row.get("property_name"),
            report_type=row.get("report_type"),
            error_code=row.get("error_code"),
            error_message=row.get("error_message"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            started_at=row.get("started_at"),
            failed_at=row.get("failed_at"),
            completed_at=row.get("completed_at"),
        )
