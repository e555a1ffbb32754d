from underwriter.classification.base import BaseDocumentClassifier
from underwriter.classification.exceptions import ClassificationError
from underwriter.classification.models import REQUIRED_DOC_TYPES, RENT_ROLL, T12, UNKNOWN
from underwriter.classification.tabular import TabularDocTypeDetector
from underwriter.database.artifacts import (
    BUCKET_INTERNAL,
    DOCUMENT_CLASSIFIED,
    DOCUMENT_PARSE_ERROR,
    DOCUMENT_TABLES_EXTRACTED,
    DOCUMENT_TABLES_FAILED,
    DOCUMENT_TEXT_EXTRACTED,
    RENT_ROLL_PARSE_ERROR,
    RENT_ROLL_PARSED,
    SUPPORTING_DOC_RECEIVED,
    T12_PARSE_ERROR,
    T12_PARSED,
)
from underwriter.database.models import (
    PARSE_EXTRACTED,
    PARSE_FAILED,
    PARSE_PARSED,
    PARSE_PARSED_WITH_WARNINGS,
    PARSE_PENDING,
    UNPROCESSED_PARSE_STATUSES,
    JobFileRecord,
)
from underwriter.database.repositories.job_file_repository import JobFileRepository
from underwriter.extraction.base import BaseStructuredExtractor
from underwriter.extraction.cells import cell_text
from underwriter.extraction.exceptions import ExtractionError
from underwriter.extraction.models import ExtractionSource
from underwriter.extraction.spreadsheet import is_spreadsheet, read_rows
from underwriter.logging.logger import Log
from underwriter.pdf.base import BasePdfExtractor
from underwriter.pdf.exceptions import PdfExtractionError
from underwriter.processor.exceptions import ProcessorError
from underwriter.processor.file_loader import FileLoader
from underwriter.processor.pipeline import (
    PipelineContext,
    PipelineStep,
    is_pdf,
    is_scannable,
    scannable_mime,
)
from underwriter.processor.recorder import ArtifactRecorder
from underwriter.services.exceptions import ServiceError
from underwriter.services.parse_client import ParseServiceClient
from underwriter.tables.base import BaseTableExtractor
from underwriter.tables.exceptions import TableExtractionError
from underwriter.tables.models import TableMatrix

PARSED_ARTIFACTS = {RENT_ROLL: RENT_ROLL_PARSED, T12: T12_PARSED}
ERROR_ARTIFACTS = {RENT_ROLL: RENT_ROLL_PARSE_ERROR, T12: T12_PARSE_ERROR}
SUPERSEDED = "superseded_by_existing_artifact"
UNSUPPORTED_FOR_PARSING = "unsupported_file_type_for_structured_parsing"


def _set_parse_status(
    file_repo: JobFileRepository,
    file: JobFileRecord,
    parse_status: str,
    parse_error: str | None = None,
) -> None:
    file_repo.update_parse_status(file.id, parse_status, parse_error)
    file.parse_status = parse_status
    file.parse_error = parse_error


class ExtractTextStep(PipelineStep):
    """Records a text excerpt for every pending PDF and spreadsheet."""

    SPREADSHEET_EXCERPT_ROWS = 5

    def __init__(
        self,
        file_loader: FileLoader,
        pdf_extractor: BasePdfExtractor,
        file_repo: JobFileRepository,
        recorder: ArtifactRecorder,
        excerpt_chars: int = 1200,
    ) -> None:
        self._file_loader = file_loader
        self._pdf_extractor = pdf_extractor
        self._file_repo = file_repo
        self._recorder = recorder
        self._excerpt_chars = excerpt_chars

    def run(self, context: PipelineContext) -> PipelineContext:
        for file in context.files:
            if file.parse_status != PARSE_PENDING:
                continue
            pdf = is_pdf(file)
            if not pdf and not is_spreadsheet(file.original_filename, file.mime_type):
                continue
            try:
                data = self._file_loader.load(file)
                if pdf:
                    extracted = self._pdf_extractor.extract(data)
                    text, pages = extracted.text, extracted.pages
                    excerpt = extracted.excerpt(self._excerpt_chars)
                else:
                    rows = read_rows(data, file.original_filename, file.mime_type)
                    text = "\n".join(
                        " ".join(cell_text(cell) for cell in row if cell_text(cell))
                        for row in rows[: self.SPREADSHEET_EXCERPT_ROWS]
                    )
                    pages = None
                    excerpt = text[: self._excerpt_chars]
            except (PdfExtractionError, ExtractionError, ProcessorError) as exc:
                Log.warning(f"Text extraction failed for file {file.id}: {exc}")
                self._recorder.record(
                    context.job,
                    DOCUMENT_PARSE_ERROR,
                    {
                        "file_id": file.id,
                        "original_filename": file.original_filename,
                        "error_message": str(exc),
                    },
                    file_id=file.id,
                )
                _set_parse_status(self._file_repo, file, PARSE_FAILED, str(exc))
                context.failed.append(file.id)
                continue

            self._recorder.record(
                context.job,
                DOCUMENT_TEXT_EXTRACTED,
                {
                    "file_id": file.id,
                    "original_filename": file.original_filename,
                    "pages": pages,
                    "chars": len(text),
                    "excerpt": excerpt,
                },
                bucket=BUCKET_INTERNAL,
                file_id=file.id,
            )
            _set_parse_status(self._file_repo, file, PARSE_EXTRACTED)
            context.excerpts[file.id] = excerpt
            Log.info(f"Extracted {len(text)} chars from file {file.id}")
        return context


class ClassifyDocumentsStep(PipelineStep):
    """Assigns a doc_type to every file that does not have one yet."""

    def __init__(
        self,
        classifier: BaseDocumentClassifier,
        file_repo: JobFileRepository,
        recorder: ArtifactRecorder,
    ) -> None:
        self._classifier = classifier
        self._file_repo = file_repo
        self._recorder = recorder

    def run(self, context: PipelineContext) -> PipelineContext:
        for file in context.files:
            if file.doc_type:
                context.skipped.append(file.id)
                continue
            excerpt = self._excerpt(context, file)
            try:
                classification = self._classifier.classify(file.original_filename, excerpt)
            except ClassificationError as exc:
                Log.warning(f"Classification failed for file {file.id}: {exc}")
                self._recorder.worker_event(
                    context.job,
                    "classification_failed",
                    file_id=file.id,
                    error_message=str(exc),
                )
                _set_parse_status(self._file_repo, file, PARSE_FAILED, "classification_failed")
                context.failed.append(file.id)
                continue

            self._file_repo.update_doc_type(file.id, classification.doc_type)
            file.doc_type = classification.doc_type
            self._recorder.record(
                context.job,
                DOCUMENT_CLASSIFIED,
                {
                    "file_id": file.id,
                    "original_filename": file.original_filename,
                    "doc_type": classification.doc_type,
                    "confidence": classification.confidence,
                    "method": classification.method,
                },
                file_id=file.id,
            )
            Log.info(
                f"Classified file {file.id} as {classification.doc_type} "
                f"({classification.confidence:.2f}, {classification.method})"
            )
        return context

    def _excerpt(self, context: PipelineContext, file: JobFileRecord) -> str:
        if file.id in context.excerpts:
            return context.excerpts[file.id]
        artifact = self._recorder.repository.latest_for_file(
            context.job.id, DOCUMENT_TEXT_EXTRACTED, file.id
        )
        if artifact is None:
            return ""
        return str(artifact.payload.get("excerpt") or "")


class _StructuredResultWriter:
    """Persists extractor outcomes: parsed artifact or error artifact, plus events."""

    def __init__(self, file_repo: JobFileRepository, recorder: ArtifactRecorder) -> None:
        self.file_repo = file_repo
        self.recorder = recorder

    def parsed(
        self,
        context: PipelineContext,
        file: JobFileRecord,
        doc_type: str,
        payload: dict[str, object],
    ) -> None:
        self.recorder.record(
            context.job,
            PARSED_ARTIFACTS[doc_type],
            {"file_id": file.id, "original_filename": file.original_filename, **payload},
            file_id=file.id,
        )
        _set_parse_status(self.file_repo, file, PARSE_PARSED)
        self.recorder.worker_event(
            context.job, "parser_completed", file_id=file.id, parser=doc_type, result="parsed"
        )
        context.parsed.append(file.id)
        Log.info(f"Parsed {doc_type} from file {file.id}")

    def failed(
        self, context: PipelineContext, file: JobFileRecord, doc_type: str, error: str
    ) -> None:
        Log.warning(f"Parsing {doc_type} from file {file.id} failed: {error}")
        self.recorder.record(
            context.job,
            ERROR_ARTIFACTS[doc_type],
            {
                "file_id": file.id,
                "original_filename": file.original_filename,
                "error_message": error,
            },
            file_id=file.id,
        )
        _set_parse_status(self.file_repo, file, PARSE_FAILED, error)
        self.recorder.worker_event(
            context.job,
            "parser_completed",
            file_id=file.id,
            parser=doc_type,
            result="failed",
            error_message=error,
        )
        context.failed.append(file.id)

    def superseded(self, context: PipelineContext, file: JobFileRecord) -> None:
        _set_parse_status(self.file_repo, file, PARSE_PARSED_WITH_WARNINGS, SUPERSEDED)
        context.skipped.append(file.id)
        Log.info(f"File {file.id} superseded by an existing {file.doc_type} artifact")


class StructuredParseStep(PipelineStep):
    """Parses spreadsheet and CSV rent rolls and T12s.

    Spreadsheets are handled before any OCR attempt. Once a job has a parsed
    artifact of a type, further files of that type are marked superseded.
    """

    def __init__(
        self,
        file_loader: FileLoader,
        detector: TabularDocTypeDetector,
        extractors: dict[str, BaseStructuredExtractor],
        file_repo: JobFileRepository,
        recorder: ArtifactRecorder,
    ) -> None:
        self._file_loader = file_loader
        self._detector = detector
        self._extractors = extractors
        self._writer = _StructuredResultWriter(file_repo, recorder)

    def run(self, context: PipelineContext) -> PipelineContext:
        for file in context.files:
            if file.doc_type not in REQUIRED_DOC_TYPES:
                continue
            if file.parse_status not in UNPROCESSED_PARSE_STATUSES:
                continue
            if is_spreadsheet(file.original_filename, file.mime_type):
                self._parse_spreadsheet(context, file)
            elif not is_scannable(file):
                self._writer.failed(context, file, file.doc_type, UNSUPPORTED_FOR_PARSING)
        return context

    def _parse_spreadsheet(self, context: PipelineContext, file: JobFileRecord) -> None:
        declared = file.doc_type
        try:
            data = self._file_loader.load(file)
            rows = read_rows(data, file.original_filename, file.mime_type)
            detection = self._detector.detect(rows[0], rows[1:])
            detected = detection.doc_type
            doc_type = detected if detected != UNKNOWN else declared
            if doc_type != declared:
                self._writer.file_repo.update_doc_type(file.id, doc_type)
                file.doc_type = doc_type

            if self._writer.recorder.repository.exists(context.job.id, PARSED_ARTIFACTS[doc_type]):
                self._writer.superseded(context, file)
                return

            result = self._extractors[doc_type].extract(
                ExtractionSource(
                    filename=file.original_filename, mime_type=file.mime_type, data=data
                )
            )
        except (ExtractionError, ProcessorError) as exc:
            self._writer.failed(context, file, file.doc_type, str(exc))
            return

        payload = result.to_payload()
        if detected != UNKNOWN and detected != declared:
            payload["parse_warnings"].append("declared_doc_type_mismatch")
        self._writer.parsed(
            context,
            file,
            doc_type,
            {
                "declared_doc_type": declared,
                "detected_doc_type": detected,
                "classifier_score": {
                    RENT_ROLL: detection.rent_roll_score,
                    T12: detection.t12_score,
                },
                "classifier_signals": detection.signals,
                **payload,
            },
        )


class TableFallbackStep(PipelineStep):
    """OCR fallback for required doc types that have no parsed artifact yet.

    Tables are detected at most once per file: a stored
    document_tables_extracted artifact is reused, and a stored
    document_tables_failed artifact means the file is not retried.
    """

    def __init__(
        self,
        file_loader: FileLoader,
        table_extractor: BaseTableExtractor,
        extractors: dict[str, BaseStructuredExtractor],
        file_repo: JobFileRepository,
        recorder: ArtifactRecorder,
    ) -> None:
        self._file_loader = file_loader
        self._table_extractor = table_extractor
        self._extractors = extractors
        self._writer = _StructuredResultWriter(file_repo, recorder)

    def run(self, context: PipelineContext) -> PipelineContext:
        artifacts = self._writer.recorder.repository
        for doc_type in REQUIRED_DOC_TYPES:
            candidates = [
                file
                for file in context.files
                if file.doc_type == doc_type
                and file.parse_status in UNPROCESSED_PARSE_STATUSES
                and is_scannable(file)
            ]
            for file in candidates:
                if artifacts.exists(context.job.id, PARSED_ARTIFACTS[doc_type]):
                    self._writer.superseded(context, file)
                    continue
                tables = self._tables_for(context, file)
                if tables is None:
                    continue
                try:
                    result = self._extractors[doc_type].extract(
                        ExtractionSource(
                            filename=file.original_filename,
                            mime_type=file.mime_type,
                            tables=tables,
                        )
                    )
                except ExtractionError as exc:
                    self._writer.failed(context, file, doc_type, str(exc))
                    continue
                self._writer.parsed(
                    context,
                    file,
                    doc_type,
                    {"declared_doc_type": doc_type, "detected_doc_type": None, **result.to_payload()},
                )
        return context

    def _tables_for(self, context: PipelineContext, file: JobFileRecord) -> list[TableMatrix] | None:
        artifacts = self._writer.recorder.repository
        stored = artifacts.latest_for_file(context.job.id, DOCUMENT_TABLES_EXTRACTED, file.id)
        if stored is not None:
            return [TableMatrix.from_dict(table) for table in stored.payload.get("tables") or []]
        if artifacts.latest_for_file(context.job.id, DOCUMENT_TABLES_FAILED, file.id) is not None:
            return None

        try:
            data = self._file_loader.load(file)
            tables = self._table_extractor.extract(data, scannable_mime(file))
        except (TableExtractionError, ProcessorError) as exc:
            Log.warning(f"Table detection failed for file {file.id}: {exc}")
            self._writer.recorder.record(
                context.job,
                DOCUMENT_TABLES_FAILED,
                {
                    "file_id": file.id,
                    "original_filename": file.original_filename,
                    "error_message": str(exc),
                },
                file_id=file.id,
            )
            _set_parse_status(
                self._writer.file_repo, file, PARSE_PARSED_WITH_WARNINGS, "textract_failed"
            )
            return None

        self._writer.recorder.record(
            context.job,
            DOCUMENT_TABLES_EXTRACTED,
            {
                "file_id": file.id,
                "original_filename": file.original_filename,
                "table_count": len(tables),
                "tables": [table.to_dict() for table in tables],
            },
            file_id=file.id,
        )
        Log.info(f"Detected {len(tables)} tables in file {file.id}")
        return tables


class SupportingDocumentsStep(PipelineStep):
    """Forwards classified non-required documents to the parsing service."""

    def __init__(
        self,
        parse_client: ParseServiceClient | None,
        file_repo: JobFileRepository,
        recorder: ArtifactRecorder,
    ) -> None:
        self._parse_client = parse_client
        self._file_repo = file_repo
        self._recorder = recorder

    def run(self, context: PipelineContext) -> PipelineContext:
        for file in context.files:
            if not file.doc_type or file.doc_type in REQUIRED_DOC_TYPES:
                continue
            if file.parse_status not in UNPROCESSED_PARSE_STATUSES:
                continue

            payload: dict[str, object] = {
                "file_id": file.id,
                "original_filename": file.original_filename,
                "doc_type": file.doc_type,
            }
            if self._parse_client is None:
                payload.update(status="unavailable", result=None)
                parse_status, parse_error = PARSE_PARSED_WITH_WARNINGS, "parse_service_unavailable"
            else:
                try:
                    result = self._parse_client.parse(context.job.id, file.id, file.doc_type)
                    payload.update(status="parsed", result=result)
                    parse_status, parse_error = PARSE_PARSED, None
                except ServiceError as exc:
                    Log.warning(f"Parse service failed for file {file.id}: {exc}")
                    payload.update(status="failed", result=None, error_message=str(exc))
                    parse_status, parse_error = PARSE_PARSED_WITH_WARNINGS, "parse_service_failed"

            self._recorder.record(context.job, SUPPORTING_DOC_RECEIVED, payload, file_id=file.id)
            _set_parse_status(self._file_repo, file, parse_status, parse_error)
        return context
