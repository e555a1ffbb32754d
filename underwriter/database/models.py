from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class JobRecord:
    """Represents a row from the analysis_jobs table."""

    id: str
    user_id: str
    status: str
    property_name: str | None = None
    report_type: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    failed_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class JobFileRecord:
    """Represents a row from the analysis_job_files table."""

    id: str
    job_id: str
    user_id: str
    original_filename: str
    mime_type: str
    storage_locator: str
    doc_type: str | None = None
    parse_status: str = "pending"
    parse_error: str | None = None
    uploaded_at: datetime | None = None


@dataclass
class ArtifactRecord:
    """Represents a row from the analysis_artifacts table."""

    id: str
    job_id: str
    type: str
    bucket: str
    storage_locator: str
    payload: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    created_at: datetime | None = None


@dataclass
class QueueMetrics:
    """Snapshot of job counts used for the worker's run summary."""

    counts_by_status: dict[str, int]
    oldest_queued_at: datetime | None = None
    latest_failed_at: datetime | None = None


PARSE_PENDING = "pending"
PARSE_EXTRACTED = "extracted"
PARSE_PARSED = "parsed"
PARSE_PARSED_WITH_WARNINGS = "parsed_with_warnings"
PARSE_FAILED = "failed"

UNPROCESSED_PARSE_STATUSES = (PARSE_PENDING, PARSE_EXTRACTED)
