from typing import Any

from underwriter.services.exceptions import ParseServiceError
from underwriter.services.http_client import JsonServiceClient


class ParseServiceClient(JsonServiceClient):
    """Client of the document parsing service used for supporting documents."""

    error_class = ParseServiceError

    def parse(self, job_id: str, file_id: str, doc_type: str) -> dict[str, Any]:
        return self.post({"job_id": job_id, "file_id": file_id, "doc_type": doc_type})
