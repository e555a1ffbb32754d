from abc import ABC, abstractmethod

from underwriter.notifications.exceptions import NotificationError


class BaseNotifier(ABC):
    """Contract for email delivery adapters."""

    @abstractmethod
    def send(self, to: str, subject: str, text: str) -> str | None:
        """Send a plain-text email.

        Returns:
            Provider message id when the provider reports one.

        Raises:
            NotificationError: on invalid input or provider failure.
        """

    @staticmethod
    def validate(to: str, subject: str, text: str) -> None:
        if not to or "@" not in to:
            raise NotificationError(f"Invalid recipient '{to}'")
        if not subject or not text:
            raise NotificationError("Email subject and text are required")
