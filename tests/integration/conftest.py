import os
from collections.abc import Callable, Generator
from typing import Any

import psycopg
import pytest
from psycopg.rows import dict_row

from underwriter.config.capabilities import FULL_SCHEMA
from underwriter.config.settings import Settings
from underwriter.database.connection import apply_schema, close_pool, get_connection, init_pool
from underwriter.database.models import JobFileRecord, JobRecord
from underwriter.database.repositories.job_repository import JobRepository


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "underwriting_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            apply_schema(conn)
    except psycopg.Error as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    """Profile ids to delete, with their jobs, files and artifacts, after the test."""
    profile_ids: list[str] = []
    yield profile_ids
    if not profile_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM analysis_artifacts WHERE job_id IN "
                "(SELECT id FROM analysis_jobs WHERE user_id = ANY(%s::uuid[]))",
                (profile_ids,),
            )
            cur.execute(
                "DELETE FROM analysis_job_files WHERE user_id = ANY(%s::uuid[])", (profile_ids,)
            )
            cur.execute("DELETE FROM analysis_jobs WHERE user_id = ANY(%s::uuid[])", (profile_ids,))
            cur.execute("DELETE FROM profiles WHERE id = ANY(%s::uuid[])", (profile_ids,))
        conn.commit()


@pytest.fixture
def seed_profile(
    db_conn: psycopg.Connection[Any], integration_cleanup: list[str]
) -> Callable[..., str]:
    def create(credits: int = 3, email: str | None = "owner@example.com") -> str:
        with db_conn.cursor() as cur:
            cur.execute(
                "INSERT INTO profiles (email, report_credits) VALUES (%s, %s) RETURNING id",
                (email, credits),
            )
            row = cur.fetchone()
            assert row is not None
        db_conn.commit()
        profile_id = str(row[0])
        integration_cleanup.append(profile_id)
        return profile_id

    return create


@pytest.fixture
def seed_job(
    db_conn: psycopg.Connection[Any], seed_profile: Callable[..., str]
) -> Callable[..., JobRecord]:
    def create(status: str = "queued", *, user_id: str | None = None) -> JobRecord:
        owner = user_id or seed_profile()
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO analysis_jobs (user_id, status, property_name, report_type)
                VALUES (%s, %s, 'Maple Court', 'underwriting')
                RETURNING id
                """,
                (owner, status),
            )
            row = cur.fetchone()
            assert row is not None
        db_conn.commit()
        job = JobRepository(FULL_SCHEMA).find_by_id(str(row[0]))
        assert job is not None
        return job

    return create


@pytest.fixture
def seed_file(db_conn: psycopg.Connection[Any]) -> Callable[..., JobFileRecord]:
    def create(
        job: JobRecord,
        original_filename: str,
        mime_type: str,
        *,
        storage_locator: str | None = None,
        doc_type: str | None = None,
    ) -> JobFileRecord:
        locator = storage_locator or f"local://uploads/{job.id}/{original_filename}"
        with db_conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO analysis_job_files
                    (job_id, user_id, original_filename, mime_type, storage_locator, doc_type)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id, job_id, user_id, original_filename, mime_type,
                          storage_locator, doc_type, parse_status, parse_error, uploaded_at
                """,
                (job.id, job.user_id, original_filename, mime_type, locator, doc_type),
            )
            row = cur.fetchone()
            assert row is not None
        db_conn.commit()
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

    return create


@pytest.fixture
def files_root(tmp_path: Any) -> Any:
    return tmp_path
