"""Notification dispatch.

Delivery is best-effort: messages are handed to background tasks after the
business transaction commits, and a failed delivery is only logged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from hr_portal.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A plain-text message for one recipient."""

    recipient: str
    subject: str
    body: str


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Interface for the message transport (email, chat, ...)."""

    async def send(self, recipient: str, subject: str, body: str) -> None:
        """Deliver one message."""
        ...


class LoggingNotificationDispatcher:
    """Development dispatcher that writes messages to the log instead of delivering them.

    ``sender`` is the From address; it defaults to ``notification_sender``.
    """

    def __init__(self, sender: str | None = None) -> None:
        self.sender = sender or get_settings().notification_sender

    async def send(self, recipient: str, subject: str, body: str) -> None:
        logger.info("Notification from %s to %s: %s\n%s", self.sender, recipient, subject, body)


class InMemoryNotificationDispatcher:
    """Records delivered messages; optionally fails every delivery."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[Notification] = []
        self.fail = fail

    async def send(self, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            msg = f"Delivery to {recipient} failed"
            raise ConnectionError(msg)
        self.sent.append(Notification(recipient=recipient, subject=subject, body=body))

    def sent_to(self, recipient: str) -> list[Notification]:
        return [n for n in self.sent if n.recipient == recipient]


_dispatcher: NotificationDispatcher | None = None
_pending: set[asyncio.Task[None]] = set()


def get_notification_dispatcher() -> NotificationDispatcher:
    """Return the configured dispatcher, a logging one unless overridden."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = LoggingNotificationDispatcher()
    return _dispatcher


def set_notification_dispatcher(dispatcher: NotificationDispatcher) -> None:
    """Override the dispatcher (for testing or production wiring)."""
    global _dispatcher
    _dispatcher = dispatcher


async def _deliver(dispatcher: NotificationDispatcher, notification: Notification) -> None:
    try:
        await dispatcher.send(notification.recipient, notification.subject, notification.body)
    except Exception:
        logger.exception("Failed to deliver %r to %s", notification.subject, notification.recipient)
    else:
        logger.debug("Delivered %r to %s", notification.subject, notification.recipient)


def dispatch(*notifications: Notification) -> None:
    """Schedule delivery without waiting for it. Call only after the transition has committed."""
    dispatcher = get_notification_dispatcher()
    for notification in notifications:
        task = asyncio.get_running_loop().create_task(_deliver(dispatcher, notification))
        _pending.add(task)
        task.add_done_callback(_pending.discard)


async def drain() -> None:
    """Wait for every scheduled delivery to finish."""
    while _pending:
        await asyncio.gather(*list(_pending))
