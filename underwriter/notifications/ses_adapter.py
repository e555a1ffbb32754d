from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from underwriter.notifications.base import BaseNotifier
from underwriter.notifications.exceptions import NotificationError


class SesNotifier(BaseNotifier):
    """Sends email through Amazon SES SendEmail."""

    def __init__(self, *, from_email: str, region_name: str, client: Any | None = None) -> None:
        if not from_email:
            raise NotificationError("ses_from_email is required for notification_provider=ses")
        self._from_email = from_email
        self._region_name = region_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("ses", region_name=self._region_name)
        return self._client

    def send(self, to: str, subject: str, text: str) -> str | None:
        self.validate(to, subject, text)
        try:
            response = self.client.send_email(
                Source=self._from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Text": {"Data": text, "Charset": "UTF-8"}},
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise NotificationError(f"SES send_email failed: {exc}") from exc
        return response.get("MessageId")
