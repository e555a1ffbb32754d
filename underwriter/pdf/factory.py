from underwriter.config.settings import Settings
from underwriter.pdf.base import BasePdfExtractor
from underwriter.pdf.pdfplumber_adapter import PdfPlumberAdapter
from underwriter.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Picks the PDF text engine named by PDF_ENGINE."""

    ENGINES: tuple[str, ...] = ("pdfplumber", "pymupdf")

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        return cls.for_engine(settings.pdf_engine)

    @classmethod
    def for_engine(cls, engine: str) -> BasePdfExtractor:
        name = engine.strip().lower()
        if name == "pdfplumber":
            return PdfPlumberAdapter()
        if name == "pymupdf":
            return PyMuPdfAdapter()
        raise ValueError(f"Unknown PDF engine '{name}'. Choose from: {list(cls.ENGINES)}")
