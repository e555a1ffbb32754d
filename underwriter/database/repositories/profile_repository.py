from datetime import datetime
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from underwriter.database.artifacts import BUCKET_SYSTEM, CREDIT_CONSUMED, build_storage_locator
from underwriter.database.connection import get_connection
from underwriter.database.exceptions import DuplicateArtifactError


class ProfileRepository:
    """Database operations for the profiles table (email and report credits)."""

    def get_credit_balance(self, owner_id: str) -> int | None:
        """Current report_credits of a profile, or None when no profile exists."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT report_credits FROM profiles WHERE id = %s", (owner_id,)
                )
                row = cur.fetchone()
        if row is None or row[0] is None:
            return None
        return int(row[0])

    def get_email(self, owner_id: str) -> str | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT email FROM profiles WHERE id = %s", (owner_id,))
                row = cur.fetchone()
        if row is None:
            return None
        return row[0]

    def consume_credit(
        self,
        owner_id: str,
        observed_balance: int,
        job_id: str,
        payload: dict[str, Any],
        created_at: datetime,
    ) -> bool:
        """Decrement the balance from `observed_balance` and record credit_consumed.

        Both statements run in one transaction. The decrement only applies while
        the balance still equals `observed_balance`.

        Returns:
            False when the balance changed underneath us (nothing is written).

        Raises:
            DuplicateArtifactError: if credit_consumed already exists for the job.
        """
        locator = build_storage_locator(job_id, CREDIT_CONSUMED, created_at)
        with get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE profiles
                        SET report_credits = %s
                        WHERE id = %s AND report_credits = %s
                        """,
                        (observed_balance - 1, owner_id, observed_balance),
                    )
                    if cur.rowcount != 1:
                        conn.rollback()
                        return False
                    cur.execute(
                        """
                        INSERT INTO analysis_artifacts
                            (job_id, user_id, type, bucket, storage_locator,
                             payload, created_at)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        """,
                        (
                            job_id,
                            owner_id,
                            CREDIT_CONSUMED,
                            BUCKET_SYSTEM,
                            locator,
                            Jsonb(payload),
                            created_at,
                        ),
                    )
                conn.commit()
            except psycopg.errors.UniqueViolation as exc:
                conn.rollback()
                raise DuplicateArtifactError(
                    f"credit_consumed already exists for job {job_id}"
                ) from exc
        return True
