from collections.abc import Callable
from datetime import timedelta
from typing import Any

from underwriter.billing.credit_ledger import CREDIT_FAILED_STATUS, CreditLedger
from underwriter.classification.models import RENT_ROLL, T12
from underwriter.database.artifacts import (
    EMAIL_NEEDS_DOCUMENTS_SENT,
    EMAIL_REPORT_READY_SENT,
    RENT_ROLL_PARSED,
    REPORT_GENERATED,
    STATUS_TRANSITION,
    SUPPORTING_DOC_RECEIVED,
    T12_PARSED,
    UNDERWRITING_INPUTS,
)
from underwriter.database.models import JobRecord
from underwriter.database.repositories.job_file_repository import JobFileRepository
from underwriter.database.repositories.profile_repository import ProfileRepository
from underwriter.logging.logger import Log
from underwriter.notifications.base import BaseNotifier
from underwriter.notifications.exceptions import NotificationError
from underwriter.notifications.messages import (
    EmailMessage,
    needs_documents_message,
    report_ready_message,
)
from underwriter.processor.processor import Processor
from underwriter.processor.recorder import ArtifactRecorder
from underwriter.services.report_client import ReportServiceClient
from underwriter.worker import status
from underwriter.worker.transitions import TransitionService

StageHandler = Callable[[JobRecord], bool]

REQUIRED_DOCUMENTS = ((RENT_ROLL, RENT_ROLL_PARSED), (T12, T12_PARSED))

DEFAULT_RESUME_GRACE_SECONDS = 300

RENT_ROLL_FIELDS = ("total_units", "occupancy", "unit_mix")
T12_FIELDS = (
    "gross_potential_rent",
    "effective_gross_income",
    "total_operating_expenses",
    "net_operating_income",
)


class StageHandlers:
    """Work done for a job in each source status.

    Every handler returns True when it changed the job's status. Handlers
    perform the conditional status update before the stage's side effects,
    except where a stage must first resume work a dead worker left behind.
    Resuming waits until the transition into the current status is older
    than `resume_grace_seconds`, unless this instance did that stage's work.
    """

    def __init__(
        self,
        *,
        processor: Processor,
        file_repo: JobFileRepository,
        profile_repo: ProfileRepository,
        recorder: ArtifactRecorder,
        transitions: TransitionService,
        ledger: CreditLedger,
        report_client: ReportServiceClient,
        notifier: BaseNotifier,
        resume_grace_seconds: float = DEFAULT_RESUME_GRACE_SECONDS,
    ) -> None:
        self._processor = processor
        self._file_repo = file_repo
        self._profile_repo = profile_repo
        self._recorder = recorder
        self._transitions = transitions
        self._ledger = ledger
        self._report_client = report_client
        self._notifier = notifier
        self._resume_grace = timedelta(seconds=resume_grace_seconds)
        self._completed_here: set[tuple[str, str]] = set()
        self._handlers: dict[str, StageHandler] = {
            status.QUEUED: self.start_extraction,
            status.EXTRACTING: self.finish_extraction,
            status.UNDERWRITING: self.build_underwriting_inputs,
            status.SCORING: self.request_report,
            status.RENDERING: self.finish_rendering,
            status.PDF_GENERATING: self.charge_credit,
            status.PUBLISHING: self.publish,
            status.NEEDS_DOCUMENTS: self.requeue,
        }

    def for_status(self, job_status: str) -> StageHandler:
        try:
            return self._handlers[job_status]
        except KeyError:
            raise ValueError(
                f"No stage handler for status '{job_status}'. "
                f"Choose from: {list(self._handlers)}"
            ) from None

    def start_extraction(self, job: JobRecord) -> bool:
        if not self._transitions.advance(job, status.EXTRACTING, started_at=self._recorder.clock()):
            return False
        self._processor.process(job)
        self._completed_here.add((job.id, status.EXTRACTING))
        return True

    def finish_extraction(self, job: JobRecord) -> bool:
        if not self._may_resume(job):
            return False
        self._processor.process(job)
        missing = self.missing_documents(job)
        if missing:
            return self._divert_to_needs_documents(job, missing)
        return self._transitions.advance(job, status.UNDERWRITING)

    def build_underwriting_inputs(self, job: JobRecord) -> bool:
        if not self._transitions.advance(job, status.SCORING):
            return False
        artifacts = self._recorder.repository
        if artifacts.exists(job.id, UNDERWRITING_INPUTS):
            return True
        rent_roll = artifacts.latest(job.id, RENT_ROLL_PARSED)
        t12 = artifacts.latest(job.id, T12_PARSED)
        supporting = artifacts.list_for_job(job.id, SUPPORTING_DOC_RECEIVED)
        self._recorder.record(
            job,
            UNDERWRITING_INPUTS,
            assemble_underwriting_inputs(
                job,
                rent_roll.payload if rent_roll else {},
                t12.payload if t12 else {},
                [artifact.payload for artifact in supporting],
                timestamp=self._recorder.now(),
            ),
        )
        return True

    def request_report(self, job: JobRecord) -> bool:
        if not self._transitions.advance(job, status.RENDERING):
            return False
        missing = self.missing_documents(job)
        if missing:
            self._divert_to_needs_documents(job, missing)
            return True
        self._ensure_report(job)
        self._completed_here.add((job.id, status.RENDERING))
        return True

    def finish_rendering(self, job: JobRecord) -> bool:
        if not self._may_resume(job):
            return False
        self._ensure_report(job)
        return self._transitions.advance(job, status.PDF_GENERATING)

    def charge_credit(self, job: JobRecord) -> bool:
        if not self._transitions.advance(job, status.PUBLISHING):
            return False
        self._ledger.consume_credit_once(job)
        return True

    def publish(self, job: JobRecord) -> bool:
        result = self._ledger.consume_credit_once(job)
        if result.status == CREDIT_FAILED_STATUS:
            return job.status == status.FAILED
        if not self._transitions.advance(
            job, status.PUBLISHED, completed_at=self._recorder.clock()
        ):
            return False
        report = self._recorder.repository.latest(job.id, REPORT_GENERATED)
        report_id = report.payload.get("report_id") if report else None
        self._notify_once(
            job, EMAIL_REPORT_READY_SENT, report_ready_message(job.property_name, report_id)
        )
        return True

    def requeue(self, job: JobRecord) -> bool:
        if not self._file_repo.has_pending(job.id):
            return False
        return self._transitions.advance(job, status.QUEUED)

    def missing_documents(self, job: JobRecord) -> list[dict[str, str]]:
        """Required document types without a parsed artifact.

        A type is "unreadable" when a file was classified as it but produced no
        result, and "absent" when no such file was uploaded.
        """
        artifacts = self._recorder.repository
        classified: set[str] | None = None
        missing = []
        for doc_type, artifact_type in REQUIRED_DOCUMENTS:
            if artifacts.exists(job.id, artifact_type):
                continue
            if classified is None:
                classified = {
                    file.doc_type for file in self._file_repo.list_for_job(job.id) if file.doc_type
                }
            missing.append(
                {
                    "doc_type": doc_type,
                    "artifact_type": artifact_type,
                    "reason": "unreadable" if doc_type in classified else "absent",
                }
            )
        return missing

    def _may_resume(self, job: JobRecord) -> bool:
        key = (job.id, job.status)
        if key in self._completed_here:
            self._completed_here.discard(key)
            return True
        entered = self._recorder.repository.latest(job.id, STATUS_TRANSITION)
        if (
            entered is None
            or entered.created_at is None
            or entered.payload.get("to_status") != job.status
        ):
            return True
        if self._recorder.clock() - entered.created_at >= self._resume_grace:
            return True
        Log.debug(f"Job {job.id} entered {job.status} recently, leaving it to its worker")
        return False

    def _divert_to_needs_documents(self, job: JobRecord, missing: list[dict[str, str]]) -> bool:
        if not self._transitions.advance(job, status.NEEDS_DOCUMENTS, meta={"missing": missing}):
            return False
        self._notify_once(
            job, EMAIL_NEEDS_DOCUMENTS_SENT, needs_documents_message(job.property_name, missing)
        )
        return True

    def _ensure_report(self, job: JobRecord) -> None:
        if self._recorder.repository.exists(job.id, REPORT_GENERATED):
            return
        report_id = self._report_client.generate(job.user_id, job.property_name, job.id)
        self._recorder.record(
            job,
            REPORT_GENERATED,
            {"job_id": job.id, "report_id": report_id, "timestamp": self._recorder.now()},
        )
        Log.info(f"Report {report_id} generated for job {job.id}")

    def _notify_once(self, job: JobRecord, marker_type: str, message: EmailMessage) -> None:
        """Send `message` to the job owner unless `marker_type` already exists.

        Delivery problems never fail the job; they leave a warning event.
        """
        if self._recorder.repository.exists(job.id, marker_type):
            return
        email = self._profile_repo.get_email(job.user_id)
        if not email:
            Log.warning(f"Job {job.id}: owner has no email, skipping {marker_type}")
            self._recorder.worker_event(
                job, "notification_skipped", notification=marker_type, reason="missing_email"
            )
            return
        try:
            message_id = self._notifier.send(email, message.subject, message.text)
        except NotificationError as exc:
            Log.warning(f"Job {job.id}: {marker_type} delivery failed: {exc}")
            self._recorder.worker_event(
                job, "notification_failed", notification=marker_type, error_message=str(exc)
            )
            return
        self._recorder.record(
            job,
            marker_type,
            {
                "job_id": job.id,
                "to": email,
                "subject": message.subject,
                "message_id": message_id,
                "timestamp": self._recorder.now(),
            },
        )


def assemble_underwriting_inputs(
    job: JobRecord,
    rent_roll: dict[str, Any],
    t12: dict[str, Any],
    supporting: list[dict[str, Any]],
    *,
    timestamp: str,
) -> dict[str, Any]:
    """Copy document values verbatim; anything absent is listed, never estimated."""
    not_available = []
    rent_roll_values: dict[str, Any] = {}
    for name in RENT_ROLL_FIELDS:
        value = rent_roll.get(name)
        rent_roll_values[name] = value
        if value is None or value == []:
            not_available.append(f"rent_roll.{name}")
    t12_values: dict[str, Any] = {}
    for name in T12_FIELDS:
        value = t12.get(name)
        t12_values[name] = value
        if value is None:
            not_available.append(f"t12.{name}")

    total_fields = len(RENT_ROLL_FIELDS) + len(T12_FIELDS)
    return {
        "job_id": job.id,
        "property_name": job.property_name,
        "rent_roll": rent_roll_values,
        "t12": t12_values,
        "sources": {
            "rent_roll_file_id": rent_roll.get("file_id"),
            "t12_file_id": t12.get("file_id"),
            "supporting_file_ids": [item.get("file_id") for item in supporting],
        },
        "not_available": not_available,
        "data_coverage": round((total_fields - len(not_available)) / total_fields, 2),
        "timestamp": timestamp,
    }
