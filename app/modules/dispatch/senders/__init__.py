"""Channel senders.

Usage:
    from modules.dispatch.senders import create_senders

    senders = create_senders(settings.channels)
    result = senders[notification.channel].send(notification)
"""

from modules.dispatch.senders.base import Sender, require_text
from modules.dispatch.senders.factory import create_sender, create_senders
from modules.dispatch.senders.log import LogSender
from modules.dispatch.senders.slack import SlackSender
from modules.dispatch.senders.telegram import TelegramSender
from modules.dispatch.senders.webhook import WebhookSender

__all__ = [
    "LogSender",
    "Sender",
    "SlackSender",
    "TelegramSender",
    "WebhookSender",
    "create_sender",
    "create_senders",
    "require_text",
]
