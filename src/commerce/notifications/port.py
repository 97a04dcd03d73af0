"""Notifier port — abstract interface for customer notifications."""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        data: dict | None = None,
    ) -> dict:
        """Send an in-app/push notification to a user.

        Returns:
            dict with keys: notification_id, status ("sent" or "failed"), error (optional)
        """
        ...

    @abstractmethod
    def send_email(self, user_id: str, subject: str, body: str) -> dict:
        """Send an email to the user's address on file.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
