from abc import ABC, abstractmethod
from typing import Any, ClassVar

from underwriter.tables.exceptions import UnsupportedMimeTypeError
from underwriter.tables.matrix import to_matrix
from underwriter.tables.models import TableMatrix


class BaseTableExtractor(ABC):
    """Contract for table detection engines.

    Engines return Textract-shaped blocks from `analyze_tables`; `extract`
    turns them into TableMatrix grids.
    """

    SUPPORTED_MIME_TYPES: ClassVar[frozenset[str]] = frozenset(
        {"application/pdf", "image/png", "image/jpeg"}
    )

    def ensure_supported(self, mime_type: str) -> None:
        if mime_type not in self.SUPPORTED_MIME_TYPES:
            raise UnsupportedMimeTypeError(
                f"Unsupported mime type '{mime_type}'. "
                f"Choose from: {sorted(self.SUPPORTED_MIME_TYPES)}"
            )

    @abstractmethod
    def analyze_tables(self, document: bytes, mime_type: str) -> list[dict[str, Any]]:
        """Run table detection over a document.

        Raises:
            UnsupportedMimeTypeError: for any type outside SUPPORTED_MIME_TYPES.
            TableExtractionError: if the engine call fails.
        """

    def extract(self, document: bytes, mime_type: str) -> list[TableMatrix]:
        return to_matrix(self.analyze_tables(document, mime_type))
