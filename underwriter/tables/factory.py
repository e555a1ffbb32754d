from underwriter.config.settings import Settings
from underwriter.tables.base import BaseTableExtractor
from underwriter.tables.pdfplumber_adapter import PdfPlumberTableExtractor
from underwriter.tables.textract_adapter import TextractTableExtractor


class TableExtractorFactory:
    """Picks the table engine named by TABLE_ENGINE."""

    ENGINES: tuple[str, ...] = ("textract", "pdfplumber")

    @classmethod
    def create(cls, settings: Settings) -> BaseTableExtractor:
        engine = settings.table_engine.lower()
        if engine == "textract":
            return TextractTableExtractor(region_name=settings.aws_region)
        if engine == "pdfplumber":
            return PdfPlumberTableExtractor()
        raise ValueError(f"Unknown table engine '{engine}'. Choose from: {list(cls.ENGINES)}")
