"""Factory for the configured channel senders."""

from typing import Dict

from infrastructure.configuration.integrations.channels import ChannelSettings
from infrastructure.logging import get_module_logger
from modules.dispatch.errors import ConfigurationError
from modules.dispatch.senders.base import Sender
from modules.dispatch.senders.log import LogSender
from modules.dispatch.senders.slack import SlackSender
from modules.dispatch.senders.telegram import TelegramSender
from modules.dispatch.senders.webhook import WebhookSender

logger = get_module_logger()


def create_sender(name: str, settings: ChannelSettings) -> Sender:
    """Build the sender for channel ``name``.

    Raises:
        ConfigurationError: If the channel is unknown or its credentials are missing
    """
    if name == "log":
        return LogSender()

    elif name == "webhook":
        if not settings.WEBHOOK_URL:
            raise ConfigurationError("WEBHOOK_URL is required for the webhook channel")
        return WebhookSender(settings.WEBHOOK_URL)

    elif name == "slack":
        if not settings.SLACK_TOKEN:
            raise ConfigurationError("SLACK_TOKEN is required for the slack channel")
        return SlackSender(settings.SLACK_TOKEN, default_channel=settings.SLACK_CHANNEL)

    elif name == "telegram":
        if not settings.TELEGRAM_BOT_TOKEN:
            raise ConfigurationError(
                "TELEGRAM_BOT_TOKEN is required for the telegram channel"
            )
        return TelegramSender(
            settings.TELEGRAM_BOT_TOKEN,
            api_url=settings.TELEGRAM_API_URL,
            default_chat_id=settings.TELEGRAM_DEFAULT_CHAT_ID,
        )

    else:
        raise ConfigurationError(f"Unknown channel: {name}")


def create_senders(settings: ChannelSettings) -> Dict[str, Sender]:
    """Build one sender per enabled channel, keyed by channel name."""
    senders = {name: create_sender(name, settings) for name in settings.enabled_channels}
    logger.info("senders_configured", channels=sorted(senders))
    return senders
