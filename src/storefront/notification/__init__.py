"""Notification sink registry.

A recording sink is used by default; a real mail adapter can be
installed at startup with ``set_notifier``.
"""

from storefront.notification.port import NotificationSink
from storefront.notification.recording import RecordingNotificationSink

_current_notifier: NotificationSink | None = None


def get_notifier() -> NotificationSink:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = RecordingNotificationSink()
    return _current_notifier


def set_notifier(notifier: NotificationSink) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
