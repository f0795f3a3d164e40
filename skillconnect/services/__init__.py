"""Notification services: SMTP email sink and the in-memory recording sink."""

import os

from .notification_sink import DeliveryResult, NotificationSink, RecordingNotificationSink
from .email_service import EmailService, EmailServiceConfig


def build_notification_sink() -> NotificationSink:
    """Return the sink selected by ``EMAIL_BACKEND`` (``smtp`` or ``memory``)."""
    backend = os.getenv("EMAIL_BACKEND", "smtp").strip().lower()
    if backend == "memory":
        return RecordingNotificationSink()
    return EmailService()


__all__ = [
    "DeliveryResult",
    "NotificationSink",
    "RecordingNotificationSink",
    "EmailService",
    "EmailServiceConfig",
    "build_notification_sink",
]
