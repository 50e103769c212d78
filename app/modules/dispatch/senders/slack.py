"""Slack sender using the Web API."""

from typing import Optional

from slack_sdk import WebClient

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_slack_error
from modules.dispatch.models import Notification
from modules.dispatch.senders.base import require_text

logger = get_module_logger()


class SlackSender:
    """Posts notifications with ``chat.postMessage``.

    The target channel comes from ``payload.slack_channel`` or the configured
    default channel.
    """

    def __init__(
        self,
        token: str,
        default_channel: str = "",
        client: Optional[WebClient] = None,
    ):
        self.default_channel = default_channel
        self.client = client or WebClient(token=token)

    @property
    def channel_name(self) -> str:
        return "slack"

    def send(self, notification: Notification) -> OperationResult:
        missing = require_text(notification)
        if missing is not None:
            return missing

        channel = notification.payload.get("slack_channel") or self.default_channel
        if not channel:
            return OperationResult.permanent_error(
                "No Slack channel in payload and no SLACK_CHANNEL configured",
                error_code="MISSING_CHANNEL",
            )

        try:
            response = self.client.chat_postMessage(
                channel=channel,
                text=notification.payload["text"],
            )
        except Exception as e:  # noqa: BLE001
            result = classify_slack_error(e)
            logger.warning(
                "slack_post_failed",
                notification_id=notification.id,
                slack_channel=channel,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        return OperationResult.success(
            data={"channel": response.get("channel"), "ts": response.get("ts")},
            message="Posted to Slack",
        )
