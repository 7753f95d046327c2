"""Outbound notifications — queued, fire-and-forget email.

Services build a :class:`Notification` and ``submit()`` it; submission only
puts a message on an in-process queue and never blocks on delivery. A single
background worker (started in the application lifespan) drains the queue and
hands each message to an :class:`EmailTransport`.

Delivery failures are logged and dropped. They never reach the request that
triggered them and never undo a committed workflow transition.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from enum import Enum
from typing import Any, Optional, Protocol

from scm_api.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    CLAIM_SENT_TO_SUPPLIER = "claim-sent-to-supplier"
    RATING_REQUESTED = "rating-requested"
    RATING_COMPLETED = "rating-completed"
    RATING_ACCEPTED = "rating-accepted"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    recipient: str
    template_data: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    def submit(self, notification: Notification) -> None: ...


class EmailTransport(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> bool: ...


# ---------------------------------------------------------------------------
# Rendering (plain text; layout belongs to the mail templates team)
# ---------------------------------------------------------------------------

def render(notification: Notification) -> tuple[str, str]:
    """Return ``(subject, body)`` for a notification."""
    data = notification.template_data
    kind = notification.kind

    if kind is NotificationKind.CLAIM_SENT_TO_SUPPLIER:
        subject = f"Claim {data.get('claim_number')} requires your response"
        lines = [
            f"Dear {data.get('supplier_name', 'Supplier')},",
            "",
            f"Claim {data.get('claim_number')} ({data.get('claim_area')}) has been raised "
            f"against your company with a damage amount of {data.get('damage_amount')}.",
            f"Description: {data.get('claim_info')}",
        ]
        if data.get("comment"):
            lines.append(f"Comment from purchasing: {data['comment']}")
        lines += ["", "Please log in to accept or reject the claim."]
    elif kind is NotificationKind.RATING_REQUESTED:
        subject = "Performance rating request received"
        lines = [
            f"Dear {data.get('supplier_name', 'Supplier')},",
            "",
            f"We have received your request for a performance rating for the project "
            f"{data.get('project_name')}. You will be notified when the rating is complete.",
        ]
    elif kind is NotificationKind.RATING_COMPLETED:
        subject = "Performance rating complete"
        lines = [
            f"Dear {data.get('supplier_name', 'Supplier')},",
            "",
            f"Your performance rating for the project {data.get('project_name')} is complete.",
            f"Overall rating: {data.get('overall_rating')}/5",
            f"Please review and accept it within {data.get('window_days')} days.",
        ]
    else:
        subject = "Supplier rating accepted"
        lines = [
            "Hello,",
            "",
            f"{data.get('supplier_name', 'The supplier')} has accepted their performance rating "
            f"for the project {data.get('project_name')}.",
            f"Overall rating: {data.get('overall_rating')}/5",
        ]
        if data.get("supplier_comment"):
            lines.append(f"Supplier comment: {data['supplier_comment']}")
    return subject, "\n".join(lines)


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class LogTransport:
    """Development transport: logs what would have been sent."""

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("EMAIL (dev mode) to=%s subject=%r\n%s", recipient, subject, body)
        return True


class SmtpTransport:
    """Delivers through an SMTP relay; the blocking client runs in a worker thread."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def _send_sync(self, message: EmailMessage) -> None:
        s = self._settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout) as client:
            if s.smtp_use_tls:
                client.starttls()
            if s.smtp_username and s.smtp_password:
                client.login(s.smtp_username, s.smtp_password)
            client.send_message(message)

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        message = EmailMessage()
        message["From"] = self._settings.mail_from
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", recipient, exc)
            return False
        return True


def build_transport(settings: Settings) -> EmailTransport:
    if settings.mail_enabled:
        return SmtpTransport(settings)
    return LogTransport()


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class NotificationDispatcher:
    """Queue-backed :class:`Notifier` with one background delivery worker."""

    def __init__(self, transport: EmailTransport, maxsize: int = 1000):
        self._transport = transport
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, notification: Notification) -> None:
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            logger.error(
                "Notification queue full; dropping %s to %s",
                notification.kind.value,
                notification.recipient,
            )

    async def deliver(self, notification: Notification) -> bool:
        """Render and send one notification. Never raises."""
        try:
            subject, body = render(notification)
            sent = await self._transport.send(notification.recipient, subject, body)
        except Exception:
            logger.exception(
                "Notification %s to %s failed", notification.kind.value, notification.recipient
            )
            return False
        if not sent:
            logger.warning(
                "Notification %s to %s was not delivered",
                notification.kind.value,
                notification.recipient,
            )
        return sent

    async def run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.run(), name="notification-dispatcher")

    async def drain(self) -> None:
        """Wait until every queued notification has been handled."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Stopping with %d undelivered notifications", self.pending)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
