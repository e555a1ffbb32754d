from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Text read from a PDF plus the number of pages it spans."""

    text: str
    pages: int

    def excerpt(self, limit: int) -> str:
        return self.text[:limit]


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Page texts joined by newlines, stripped, with the page count.

        Raises:
            PdfExtractionError: if the bytes are not a readable PDF.
        """
