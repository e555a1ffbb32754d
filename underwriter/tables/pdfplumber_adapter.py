import io
from typing import Any

import pdfplumber

from underwriter.tables.base import BaseTableExtractor
from underwriter.tables.exceptions import TableExtractionError, UnsupportedMimeTypeError


class PdfPlumberTableExtractor(BaseTableExtractor):
    """Table detection for digital PDFs using pdfplumber.

    Emits Textract-shaped TABLE/CELL/WORD blocks without confidence scores.
    Images have no text layer and are rejected.
    """

    def analyze_tables(self, document: bytes, mime_type: str) -> list[dict[str, Any]]:
        self.ensure_supported(mime_type)
        if mime_type != "application/pdf":
            raise UnsupportedMimeTypeError(
                f"Unsupported mime type '{mime_type}' for pdfplumber tables"
            )
        try:
            with pdfplumber.open(io.BytesIO(document)) as pdf:
                tables = [table for page in pdf.pages for table in page.extract_tables()]
        except Exception as exc:
            raise TableExtractionError(f"pdfplumber table extraction failed: {exc}") from exc

        blocks: list[dict[str, Any]] = []
        for table_number, table in enumerate(tables, start=1):
            table_id = f"table-{table_number}"
            cell_ids: list[str] = []
            for row_index, row in enumerate(table, start=1):
                for col_index, value in enumerate(row, start=1):
                    cell_id = f"{table_id}-cell-{row_index}-{col_index}"
                    word_ids: list[str] = []
                    for word_number, word in enumerate((value or "").split(), start=1):
                        word_id = f"{cell_id}-word-{word_number}"
                        word_ids.append(word_id)
                        blocks.append({"Id": word_id, "BlockType": "WORD", "Text": word})
                    cell: dict[str, Any] = {
                        "Id": cell_id,
                        "BlockType": "CELL",
                        "RowIndex": row_index,
                        "ColumnIndex": col_index,
                    }
                    if word_ids:
                        cell["Relationships"] = [{"Type": "CHILD", "Ids": word_ids}]
                    blocks.append(cell)
                    cell_ids.append(cell_id)
            blocks.append(
                {
                    "Id": table_id,
                    "BlockType": "TABLE",
                    "Relationships": [{"Type": "CHILD", "Ids": cell_ids}],
                }
            )
        return blocks
