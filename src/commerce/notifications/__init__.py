"""Notifier registry — pluggable customer notification dispatch.

Uses the fake notifier by default (NOTIFIER_ADAPTER=fake). A real push/email
adapter plugs in by implementing `NotifierPort`.
"""

import os

from commerce.notifications.port import NotifierPort

_current_notifier: NotifierPort | None = None


def get_notifier() -> NotifierPort:
    """Return the configured notifier (singleton)."""
    global _current_notifier
    if _current_notifier is None:
        adapter = os.environ.get("NOTIFIER_ADAPTER", "fake")
        if adapter == "fake":
            from commerce.notifications.fake_adapter import FakeNotifier

            _current_notifier = FakeNotifier()
        else:
            raise ValueError(f"Unknown notifier adapter: {adapter}")
    return _current_notifier


def set_notifier(notifier: NotifierPort) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Reset the notifier singleton (useful for testing)."""
    global _current_notifier
    _current_notifier = None
