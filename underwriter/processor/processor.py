from pathlib import Path

from underwriter.classification.factory import ClassifierFactory
from underwriter.classification.models import RENT_ROLL, T12
from underwriter.classification.tabular import TabularDocTypeDetector
from underwriter.config.settings import Settings
from underwriter.database.models import JobRecord
from underwriter.database.repositories.job_file_repository import JobFileRepository
from underwriter.extraction.rent_roll import OcrTableRentRollExtractor, SpreadsheetRentRollExtractor
from underwriter.extraction.t12 import OcrTableT12Extractor, SpreadsheetT12Extractor
from underwriter.logging.logger import Log
from underwriter.pdf.factory import PdfExtractorFactory
from underwriter.processor.file_loader import FileLoader
from underwriter.processor.pipeline import PipelineContext, PipelineStep
from underwriter.processor.recorder import ArtifactRecorder
from underwriter.processor.steps import (
    ClassifyDocumentsStep,
    ExtractTextStep,
    StructuredParseStep,
    SupportingDocumentsStep,
    TableFallbackStep,
)
from underwriter.services.factory import build_parse_client
from underwriter.tables.factory import TableExtractorFactory


class Processor:
    """Runs the per-job extraction pipeline.

    Pipeline: extract text -> classify -> parse spreadsheets -> OCR fallback
    -> supporting documents. Every step skips work whose result already
    exists, so calling `process` again for the same job is safe.
    """

    def __init__(self, file_repo: JobFileRepository, steps: list[PipelineStep]) -> None:
        self._file_repo = file_repo
        self._steps = steps

    def process(self, job: JobRecord) -> PipelineContext:
        files = self._file_repo.list_for_job(job.id)
        Log.info(f"Processing {len(files)} files for job {job.id}")
        context = PipelineContext(job=job, files=files)
        for step in self._steps:
            context = step.run(context)
        Log.info(
            f"Job {job.id} processed: {len(context.parsed)} parsed, "
            f"{len(context.failed)} failed, {len(context.skipped)} skipped"
        )
        return context


def build_processor(
    settings: Settings,
    file_repo: JobFileRepository,
    recorder: ArtifactRecorder,
    files_root: Path | None = None,
) -> Processor:
    """Build a Processor with the adapters selected by settings."""
    file_loader = FileLoader(
        files_root=files_root if files_root is not None else Path(settings.files_root),
        region_name=settings.aws_region,
    )
    steps: list[PipelineStep] = [
        ExtractTextStep(
            file_loader,
            PdfExtractorFactory.create(settings),
            file_repo,
            recorder,
            excerpt_chars=settings.text_excerpt_chars,
        ),
        ClassifyDocumentsStep(ClassifierFactory.create(settings), file_repo, recorder),
        StructuredParseStep(
            file_loader,
            TabularDocTypeDetector(),
            {RENT_ROLL: SpreadsheetRentRollExtractor(), T12: SpreadsheetT12Extractor()},
            file_repo,
            recorder,
        ),
        TableFallbackStep(
            file_loader,
            TableExtractorFactory.create(settings),
            {RENT_ROLL: OcrTableRentRollExtractor(), T12: OcrTableT12Extractor()},
            file_repo,
            recorder,
        ),
        SupportingDocumentsStep(build_parse_client(settings), file_repo, recorder),
    ]
    return Processor(file_repo, steps)
