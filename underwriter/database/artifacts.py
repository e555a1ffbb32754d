from datetime import datetime

BUCKET_SYSTEM = "system"
BUCKET_INTERNAL = "internal"

STATUS_TRANSITION = "status_transition"
WORKER_EVENT = "worker_event"
DOCUMENT_TEXT_EXTRACTED = "document_text_extracted"
DOCUMENT_PARSE_ERROR = "document_parse_error"
DOCUMENT_CLASSIFIED = "document_classified"
DOCUMENT_TABLES_EXTRACTED = "document_tables_extracted"
DOCUMENT_TABLES_FAILED = "document_tables_failed"
RENT_ROLL_PARSED = "rent_roll_parsed"
RENT_ROLL_PARSE_ERROR = "rent_roll_parse_error"
T12_PARSED = "t12_parsed"
T12_PARSE_ERROR = "t12_parse_error"
SUPPORTING_DOC_RECEIVED = "supporting_doc_received"
UNDERWRITING_INPUTS = "underwriting_inputs"
REPORT_GENERATED = "report_generated"
CREDIT_CONSUMED = "credit_consumed"
CREDIT_FAILED = "credit_failed"
EMAIL_NEEDS_DOCUMENTS_SENT = "email_needs_documents_sent"
EMAIL_REPORT_READY_SENT = "email_report_ready_sent"


def build_storage_locator(
    job_id: str, artifact_type: str, created_at: datetime, file_id: str | None = None
) -> str:
    """Object path of an artifact: analysis_jobs/{job}/{type}/[{file}/]{ts}.json."""
    timestamp = created_at.isoformat().replace(":", "-")
    parts = ["analysis_jobs", job_id, artifact_type]
    if file_id:
        parts.append(file_id)
    parts.append(f"{timestamp}.json")
    return "/".join(parts)
