"""
Notification module.

Sinks for user-facing transition messages.
"""
from .notifier import LoggingNotifier, Notifier, send_notification

__all__ = [
    "Notifier",
    "LoggingNotifier",
    "send_notification",
]
