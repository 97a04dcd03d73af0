"""Fake notifier — records notifications and emails for testing."""

from uuid import uuid4

from commerce.notifications.port import NotifierPort


class FakeNotifier(NotifierPort):
    """Notifier that records messages in memory for test assertions."""

    def __init__(self):
        self.notifications: list[dict] = []
        self.emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        data: dict | None = None,
    ) -> dict:
        if not self.should_succeed:
            return {"notification_id": None, "status": "failed", "error": self.failure_reason}

        notification_id = f"ntf-{uuid4().hex[:12]}"
        self.notifications.append(
            {
                "notification_id": notification_id,
                "user_id": user_id,
                "title": title,
                "message": message,
                "kind": kind,
                "data": data or {},
            }
        )
        return {"notification_id": notification_id, "status": "sent"}

    def send_email(self, user_id: str, subject: str, body: str) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.emails.append({"message_id": message_id, "user_id": user_id, "subject": subject, "body": body})
        return {"message_id": message_id, "status": "sent"}

    def kinds_for(self, user_id: str) -> list[str]:
        return [n["kind"] for n in self.notifications if n["user_id"] == str(user_id)]

    def reset(self):
        """Clear recorded messages (useful between tests)."""
        self.notifications.clear()
        self.emails.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
