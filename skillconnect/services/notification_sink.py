"""
Notification sink contract.

A sink accepts (recipient, subject, body) and reports per-message success
or failure. Sinks do not retry; callers decide whether to try again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationSink(Protocol):
    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        template: Optional[str] = None,
    ) -> DeliveryResult:
        ...


@dataclass
class SentMessage:
    recipient: str
    subject: str
    body: str
    template: Optional[str] = None


@dataclass
class RecordingNotificationSink:
    """In-memory sink: records messages instead of delivering them.

    Used when ``EMAIL_BACKEND=memory`` (local development) and by tests.
    Addresses in ``failing_recipients`` are reported as undeliverable.
    """

    sent: List[SentMessage] = field(default_factory=list)
    failing_recipients: set = field(default_factory=set)

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        template: Optional[str] = None,
    ) -> DeliveryResult:
        if recipient in self.failing_recipients:
            return DeliveryResult(success=False, error=f"Mailbox unavailable: {recipient}")
        self.sent.append(SentMessage(recipient, subject, body, template))
        logger.info("notification_recorded recipient=%s subject=%s", recipient, subject)
        return DeliveryResult(success=True, message_id=f"memory-{len(self.sent)}")
