"""Escalation of notifications that reached a terminal failure.

Escalation is a side effect: failures to escalate are logged and never
raised, so they cannot disturb queue state.
"""

from typing import Optional, Protocol

import requests

from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)
from infrastructure.configuration.integrations.escalation import EscalationSettings
from modules.dispatch.errors import ConfigurationError
from modules.dispatch.models import utc_now

logger = get_module_logger()


class Escalation(Protocol):
    """Receives failed and orphaned notifications."""

    def notify(self, notification_id: str, reason: str) -> None: ...


class LogEscalation:
    """Escalates by writing an error log entry."""

    def notify(self, notification_id: str, reason: str) -> None:
        logger.error(
            "notification_escalated",
            notification_id=notification_id,
            reason=reason,
        )


class WebhookEscalation:
    """Escalates by POSTing a JSON document to an alerting webhook."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def notify(self, notification_id: str, reason: str) -> None:
        body = {
            "notification_id": notification_id,
            "reason": reason,
            "escalated_at": utc_now().isoformat(),
        }
        try:
            response = self.session.post(
                self.url,
                json=body,
                headers={"Idempotency-Key": f"escalation-{notification_id}"},
                timeout=self.timeout_seconds,
            )
            result: OperationResult = classify_http_response(
                response.status_code, response.headers, response.text
            )
        except requests.RequestException as e:
            result = classify_request_exception(e)

        if result.is_success:
            logger.info("notification_escalated", notification_id=notification_id)
        else:
            logger.error(
                "escalation_failed",
                notification_id=notification_id,
                reason=reason,
                error=result.message,
                error_code=result.error_code,
            )


def escalate(escalation: Escalation, notification_id: str, reason: str) -> None:
    """Invoke ``escalation`` and log, never raise, whatever it throws."""
    try:
        escalation.notify(notification_id, reason)
    except Exception as e:  # noqa: BLE001
        logger.error(
            "escalation_error",
            notification_id=notification_id,
            reason=reason,
            error=str(e),
            exc_info=True,
        )


def create_escalation(settings: EscalationSettings) -> Escalation:
    """Build the escalation backend selected by ESCALATION_BACKEND.

    Raises:
        ConfigurationError: If the webhook backend has no URL
    """
    if settings.ESCALATION_BACKEND == "webhook":
        if not settings.ESCALATION_WEBHOOK_URL:
            raise ConfigurationError(
                "ESCALATION_WEBHOOK_URL is required when ESCALATION_BACKEND=webhook"
            )
        return WebhookEscalation(settings.ESCALATION_WEBHOOK_URL)
    return LogEscalation()
