from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "underwriting"
    db_username: str = "underwriting"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    store_schema_version: int = 2

    driver_batch_size: int = 25
    driver_max_passes: int = 10
    driver_time_budget_seconds: float = 50.0
    job_timeout_minutes: int = 60
    stage_resume_grace_seconds: int = 300

    worker_poll_interval_seconds: int = 30
    worker_run_once: bool = False

    files_root: str = "/app/files"
    pdf_engine: str = "pdfplumber"
    table_engine: str = "textract"
    text_excerpt_chars: int = 1200

    classifier_provider: str = "rules"
    openai_api_key: str = ""
    openai_model_name: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 30
    openai_base_url: str | None = None

    aws_region: str = "us-east-1"
    notification_provider: str = "log"
    ses_from_email: str = ""

    parse_service_url: str = ""
    report_service_url: str = ""
    service_api_key: str = ""
    service_timeout_seconds: int = 60
