from underwriter.config.settings import Settings
from underwriter.notifications.base import BaseNotifier
from underwriter.notifications.log_adapter import LogNotifier
from underwriter.notifications.ses_adapter import SesNotifier


class NotifierFactory:
    """Creates the notifier named by NOTIFICATION_PROVIDER."""

    PROVIDERS: tuple[str, ...] = ("log", "ses")

    @classmethod
    def create(cls, settings: Settings) -> BaseNotifier:
        provider = settings.notification_provider.lower()
        if provider == "log":
            return LogNotifier()
        if provider == "ses":
            return SesNotifier(from_email=settings.ses_from_email, region_name=settings.aws_region)
        raise ValueError(
            f"Unknown notification provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
