from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from underwriter.database.models import JobFileRecord, JobRecord

PDF_MIME = "application/pdf"
IMAGE_MIMES = ("image/png", "image/jpeg")


def is_pdf(file: JobFileRecord) -> bool:
    return file.mime_type.lower() == PDF_MIME or file.original_filename.lower().endswith(".pdf")


def is_scannable(file: JobFileRecord) -> bool:
    """PDF or image, i.e. something table detection accepts."""
    return is_pdf(file) or file.mime_type.lower() in IMAGE_MIMES


def scannable_mime(file: JobFileRecord) -> str:
    return PDF_MIME if is_pdf(file) else file.mime_type.lower()


@dataclass(slots=True)
class PipelineContext:
    job: JobRecord
    files: list[JobFileRecord]
    excerpts: dict[str, str] = field(default_factory=dict)
    parsed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
