from unittest.mock import MagicMock

import pytest

from underwriter.config.settings import Settings
from underwriter.pdf.factory import PdfExtractorFactory
from underwriter.pdf.pdfplumber_adapter import PdfPlumberAdapter
from underwriter.pdf.pymupdf_adapter import PyMuPdfAdapter


def _make_settings(pdf_engine: str) -> MagicMock:
    return MagicMock(spec=Settings, pdf_engine=pdf_engine)


class TestPdfExtractorFactory:
    def test_creates_pdfplumber_adapter(self) -> None:
        assert isinstance(PdfExtractorFactory.create(_make_settings("pdfplumber")), PdfPlumberAdapter)

    def test_creates_pymupdf_adapter(self) -> None:
        assert isinstance(PdfExtractorFactory.create(_make_settings("pymupdf")), PyMuPdfAdapter)

    def test_is_case_insensitive(self) -> None:
        assert isinstance(PdfExtractorFactory.create(_make_settings("PdfPlumber")), PdfPlumberAdapter)

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine"):
            PdfExtractorFactory.create(_make_settings("unknown"))

    def test_for_engine_ignores_surrounding_whitespace(self) -> None:
        assert isinstance(PdfExtractorFactory.for_engine(" pymupdf "), PyMuPdfAdapter)
