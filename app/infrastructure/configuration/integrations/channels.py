"""Delivery channel integration settings."""

from typing import List

from pydantic import Field, field_validator, model_validator

from infrastructure.configuration.base import IntegrationSettings

KNOWN_CHANNELS = ("log", "webhook", "slack", "telegram")


class ChannelSettings(IntegrationSettings):
    """Delivery channel configuration.

    A channel is enabled by listing it in CHANNELS. Credentials are only
    required for enabled channels; the sender factory reports missing ones at
    startup.

    Environment Variables:
        CHANNELS: Comma-separated enabled channels (default: log)
        DEFAULT_CHANNEL: Channel used when an event names none and has no route
        WEBHOOK_URL: Endpoint receiving JSON POSTs for the webhook channel
        SLACK_TOKEN: Slack bot token (xoxb-*)
        SLACK_CHANNEL: Default Slack channel ID
        TELEGRAM_BOT_TOKEN: Telegram bot token
        TELEGRAM_API_URL: Telegram Bot API base URL
        TELEGRAM_DEFAULT_CHAT_ID: Chat used when the payload has no chat_id

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if "slack" in settings.channels.enabled_channels:
            token = settings.channels.SLACK_TOKEN
        ```
    """

    CHANNELS: str = Field(default="log", alias="CHANNELS")
    DEFAULT_CHANNEL: str = Field(default="log", alias="DEFAULT_CHANNEL")
    WEBHOOK_URL: str = Field(default="", alias="WEBHOOK_URL")
    SLACK_TOKEN: str = Field(default="", alias="SLACK_TOKEN")
    SLACK_CHANNEL: str = Field(default="", alias="SLACK_CHANNEL")
    TELEGRAM_BOT_TOKEN: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    TELEGRAM_API_URL: str = Field(
        default="https://api.telegram.org", alias="TELEGRAM_API_URL"
    )
    TELEGRAM_DEFAULT_CHAT_ID: str = Field(default="", alias="TELEGRAM_DEFAULT_CHAT_ID")

    @field_validator("CHANNELS", mode="after")
    @classmethod
    def _validate_channels(cls, v: str) -> str:
        names = [name.strip().lower() for name in v.split(",") if name.strip()]
        if not names:
            raise ValueError("CHANNELS must enable at least one channel")
        unknown = [name for name in names if name not in KNOWN_CHANNELS]
        if unknown:
            raise ValueError(
                f"Unknown channel(s) in CHANNELS: {', '.join(unknown)}. "
                f"Known channels: {', '.join(KNOWN_CHANNELS)}"
            )
        return ",".join(names)

    @model_validator(mode="after")
    def _validate_default_channel(self) -> "ChannelSettings":
        if self.DEFAULT_CHANNEL not in self.enabled_channels:
            raise ValueError(
                f"DEFAULT_CHANNEL {self.DEFAULT_CHANNEL!r} is not enabled in CHANNELS"
            )
        return self

    @property
    def enabled_channels(self) -> List[str]:
        """Enabled channel names, in configuration order."""
        return self.CHANNELS.split(",")
