from underwriter.billing.credit_ledger import CreditLedger
from underwriter.config.capabilities import StoreCapabilities
from underwriter.config.settings import Settings
from underwriter.database.connection import close_pool, init_pool
from underwriter.database.repositories.artifact_repository import ArtifactRepository
from underwriter.database.repositories.job_file_repository import JobFileRepository
from underwriter.database.repositories.job_repository import JobRepository
from underwriter.database.repositories.profile_repository import ProfileRepository
from underwriter.logging.logger import Log
from underwriter.notifications.factory import NotifierFactory
from underwriter.processor.processor import build_processor
from underwriter.processor.recorder import ArtifactRecorder
from underwriter.services.factory import build_report_client
from underwriter.worker.driver import Driver
from underwriter.worker.job_runner import JobRunner
from underwriter.worker.stages import StageHandlers
from underwriter.worker.transitions import TransitionService
from underwriter.worker.worker import Worker


def build_worker(settings: Settings) -> Worker:
    """Wire repositories, pipeline, collaborators and driver from settings."""
    capabilities = StoreCapabilities.from_settings(settings)
    job_repo = JobRepository(capabilities)
    file_repo = JobFileRepository()
    profile_repo = ProfileRepository()
    recorder = ArtifactRecorder(ArtifactRepository())
    transitions = TransitionService(job_repo, recorder)
    handlers = StageHandlers(
        processor=build_processor(settings, file_repo, recorder),
        file_repo=file_repo,
        profile_repo=profile_repo,
        recorder=recorder,
        transitions=transitions,
        ledger=CreditLedger(profile_repo, recorder, transitions),
        report_client=build_report_client(settings),
        notifier=NotifierFactory.create(settings),
        resume_grace_seconds=settings.stage_resume_grace_seconds,
    )
    driver = Driver(
        job_repo,
        handlers,
        JobRunner(transitions),
        transitions,
        batch_size=settings.driver_batch_size,
        max_passes=settings.driver_max_passes,
        time_budget_seconds=settings.driver_time_budget_seconds,
        timeout_minutes=settings.job_timeout_minutes,
    )
    return Worker(driver, job_repo, settings)


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        build_worker(settings).run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
