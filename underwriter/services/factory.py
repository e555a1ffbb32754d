from underwriter.config.settings import Settings
from underwriter.services.parse_client import ParseServiceClient
from underwriter.services.report_client import ReportServiceClient


def build_parse_client(settings: Settings) -> ParseServiceClient | None:
    """Parse service client, or None when PARSE_SERVICE_URL is not set."""
    if not settings.parse_service_url:
        return None
    return ParseServiceClient(
        url=settings.parse_service_url,
        api_key=settings.service_api_key,
        timeout_seconds=settings.service_timeout_seconds,
    )


def build_report_client(settings: Settings) -> ReportServiceClient:
    if not settings.report_service_url:
        raise ValueError("report_service_url is required to generate reports")
    return ReportServiceClient(
        url=settings.report_service_url,
        api_key=settings.service_api_key,
        timeout_seconds=settings.service_timeout_seconds,
    )
