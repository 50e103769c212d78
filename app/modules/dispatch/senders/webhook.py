"""Webhook sender: JSON POST to a configured endpoint."""

from typing import Optional

import requests

from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)
from modules.dispatch.models import Notification
from modules.dispatch.senders.base import require_text

logger = get_module_logger()


class WebhookSender:
    """POSTs notifications as JSON.

    The notification id travels in the ``Idempotency-Key`` header so the
    receiver can discard redeliveries.

    Args:
        url: Endpoint URL
        timeout_seconds: Connect/read timeout for the request
        session: Optional requests session (connection pooling, tests)
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def channel_name(self) -> str:
        return "webhook"

    def send(self, notification: Notification) -> OperationResult:
        missing = require_text(notification)
        if missing is not None:
            return missing

        body = {
            "id": notification.id,
            "source": notification.source,
            "created_at": notification.created_at.isoformat(),
            "payload": notification.payload,
        }
        try:
            response = self.session.post(
                self.url,
                json=body,
                headers={"Idempotency-Key": notification.id},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            result = classify_request_exception(e)
            logger.warning(
                "webhook_request_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        result = classify_http_response(
            response.status_code, response.headers, response.text
        )
        if not result.is_success:
            logger.warning(
                "webhook_rejected",
                notification_id=notification.id,
                status_code=response.status_code,
                error_code=result.error_code,
            )
        return result
