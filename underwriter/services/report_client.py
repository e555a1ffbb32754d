from underwriter.services.exceptions import ReportServiceError
from underwriter.services.http_client import JsonServiceClient


class ReportServiceClient(JsonServiceClient):
    """Client of the report generation service."""

    error_class = ReportServiceError

    def generate(self, user_id: str, property_name: str | None, job_id: str) -> str:
        """Request a report for the job and return the service's report id."""
        body = self.post({"userId": user_id, "property_name": property_name, "jobId": job_id})
        report_id = body.get("reportId")
        if not report_id:
            raise ReportServiceError(f"Report service returned no reportId for job {job_id}")
        return str(report_id)
