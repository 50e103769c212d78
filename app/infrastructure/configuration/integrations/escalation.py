"""Escalation integration settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import IntegrationSettings

ESCALATION_BACKENDS = ("log", "webhook")


class EscalationSettings(IntegrationSettings):
    """Escalation target for failed and orphaned notifications.

    Environment Variables:
        ESCALATION_BACKEND: 'log' (default) or 'webhook'
        ESCALATION_WEBHOOK_URL: Endpoint receiving escalation POSTs
    """

    ESCALATION_BACKEND: str = Field(default="log", alias="ESCALATION_BACKEND")
    ESCALATION_WEBHOOK_URL: str = Field(default="", alias="ESCALATION_WEBHOOK_URL")

    @field_validator("ESCALATION_BACKEND", mode="after")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ESCALATION_BACKENDS:
            raise ValueError(
                f"ESCALATION_BACKEND must be one of {', '.join(ESCALATION_BACKENDS)}"
            )
        return v
