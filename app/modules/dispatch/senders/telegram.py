"""Telegram sender using the Bot API ``sendMessage`` method."""

from typing import Any, Dict, Optional

import requests

from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)
from infrastructure.operations.classifiers import parse_retry_after
from modules.dispatch.models import Notification
from modules.dispatch.senders.base import require_text

logger = get_module_logger()

PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404})


class TelegramSender:
    """Sends text messages to a Telegram chat.

    The chat comes from ``payload.chat_id`` or TELEGRAM_DEFAULT_CHAT_ID.
    The Bot API has no idempotency keys; a redelivery after a lost response
    can produce a second message.

    Args:
        token: Bot token
        api_url: Bot API base URL
        default_chat_id: Chat used when the payload names none
        timeout_seconds: Request timeout
        session: Optional requests session
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.telegram.org",
        default_chat_id: str = "",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._endpoint = f"{api_url.rstrip('/')}/bot{token}/sendMessage"
        self.default_chat_id = default_chat_id
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def channel_name(self) -> str:
        return "telegram"

    def send(self, notification: Notification) -> OperationResult:
        missing = require_text(notification)
        if missing is not None:
            return missing

        chat_id = notification.payload.get("chat_id") or self.default_chat_id
        if not chat_id:
            return OperationResult.permanent_error(
                "No chat_id in payload and no TELEGRAM_DEFAULT_CHAT_ID configured",
                error_code="MISSING_CHAT_ID",
            )

        try:
            response = self.session.post(
                self._endpoint,
                json={"chat_id": chat_id, "text": notification.payload["text"]},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            result = classify_request_exception(e)
            logger.warning(
                "telegram_request_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return result

        body = self._json(response)
        if response.status_code in PERMANENT_STATUS_CODES:
            description = body.get("description") or response.text[:200]
            logger.warning(
                "telegram_rejected",
                notification_id=notification.id,
                chat_id=chat_id,
                status_code=response.status_code,
                description=description,
            )
            return OperationResult.permanent_error(
                f"Telegram rejected the message ({response.status_code}): {description}",
                error_code="TELEGRAM_REJECTED",
            )

        retry_after = parse_retry_after(
            (body.get("parameters") or {}).get("retry_after")
        )
        result = classify_http_response(
            response.status_code,
            response.headers,
            body.get("description"),
            retry_after=retry_after,
        )
        if result.is_success and body.get("ok") is False:
            return OperationResult.transient_error(
                f"Telegram returned ok=false: {body.get('description')}",
                error_code="TELEGRAM_NOT_OK",
            )
        if not result.is_success:
            logger.warning(
                "telegram_send_failed",
                notification_id=notification.id,
                status_code=response.status_code,
                error_code=result.error_code,
                retry_after=result.retry_after,
            )
        return result

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
