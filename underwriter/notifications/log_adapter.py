from underwriter.logging.logger import Log
from underwriter.notifications.base import BaseNotifier


class LogNotifier(BaseNotifier):
    """Development adapter: writes emails to the log instead of sending them."""

    def send(self, to: str, subject: str, text: str) -> str | None:
        self.validate(to, subject, text)
        Log.info(f"Email to {to}: {subject}\n{text}")
        return None
