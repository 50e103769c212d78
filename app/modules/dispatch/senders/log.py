"""Log sender for development: delivery is a log entry."""

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from modules.dispatch.models import Notification
from modules.dispatch.senders.base import require_text

logger = get_module_logger()


class LogSender:
    @property
    def channel_name(self) -> str:
        return "log"

    def send(self, notification: Notification) -> OperationResult:
        missing = require_text(notification)
        if missing is not None:
            return missing

        logger.info(
            "notification_delivered_to_log",
            notification_id=notification.id,
            source=notification.source,
            text=notification.payload["text"],
        )
        return OperationResult.success(data={"notification_id": notification.id})
