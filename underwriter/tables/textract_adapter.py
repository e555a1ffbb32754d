from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from underwriter.logging.logger import Log
from underwriter.tables.base import BaseTableExtractor
from underwriter.tables.exceptions import TableExtractionError


class TextractTableExtractor(BaseTableExtractor):
    """Table detection through AWS Textract AnalyzeDocument (TABLES feature)."""

    def __init__(self, region_name: str, client: Any | None = None) -> None:
        self._region_name = region_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("textract", region_name=self._region_name)
        return self._client

    def analyze_tables(self, document: bytes, mime_type: str) -> list[dict[str, Any]]:
        self.ensure_supported(mime_type)
        try:
            response = self.client.analyze_document(
                Document={"Bytes": document},
                FeatureTypes=["TABLES"],
            )
        except (BotoCoreError, ClientError) as exc:
            raise TableExtractionError(f"Textract analyze_document failed: {exc}") from exc

        blocks: list[dict[str, Any]] = response.get("Blocks") or []
        Log.info(f"Textract returned {len(blocks)} blocks for {mime_type} document")
        return blocks
