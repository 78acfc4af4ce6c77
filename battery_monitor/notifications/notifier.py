"""
Notification sinks.

The monitor hands user-facing messages to a Notifier. Delivery is
best effort: failures are logged and never interrupt a refresh.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Accepts a text message and shows it to the user."""

    @abstractmethod
    async def notify(self, message: str) -> None:
        ...


class LoggingNotifier(Notifier):
    """
    Notifier that writes messages to the log.

    Used when no desktop notification backend is configured, and keeps
    the most recent messages for inspection.
    """

    def __init__(self, history_size: int = 50):
        self.history_size = history_size
        self.history: List[str] = []

    async def notify(self, message: str) -> None:
        logger.info(f"Notification: {message}")
        self.history.append(message)
        if len(self.history) > self.history_size:
            self.history.pop(0)


async def send_notification(notifier: Optional[Notifier], message: str) -> bool:
    """
    Deliver a message without letting delivery failures propagate.

    Args:
        notifier: Sink to deliver to, or None to drop the message.
        message: Text to show the user.

    Returns:
        True if the notifier accepted the message.
    """
    if notifier is None:
        logger.debug(f"No notifier configured, dropping: {message}")
        return False

    try:
        await notifier.notify(message)
        return True
    except Exception as e:
        logger.error(f"Error delivering notification {message!r}: {e}")
        return False
