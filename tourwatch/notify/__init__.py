"""Notification dispatch and the Telegram messaging gateway."""

from tourwatch.notify.dispatcher import (
    MessageGateway,
    NotificationDispatcher,
    format_message,
    should_notify,
)
from tourwatch.notify.telegram import TelegramGateway

__all__ = [
    "MessageGateway",
    "NotificationDispatcher",
    "TelegramGateway",
    "format_message",
    "should_notify",
]
