"""Event intake infrastructure settings."""

import json
from typing import Any, Dict, Optional

from limits import parse
from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class IntakeSettings(InfrastructureSettings):
    """Event intake configuration.

    Environment Variables:
        INTAKE_RATE_LIMIT: Per-source rate limit in `limits` notation (default: 100/second)
        INTAKE_POLL_INTERVAL_SECONDS: How often event sources are polled (default: 5s)
        INTAKE_SPOOL_ENABLED: Read JSON events dropped into <DATA_DIR>/inbox (default: True)
        INTAKE_ROUTES: JSON object mapping source name to channel name

    Example:
        ```bash
        INTAKE_RATE_LIMIT="20/minute"
        INTAKE_ROUTES='{"reminders": "telegram", "alerts": "slack"}'
        ```
    """

    rate_limit: str = Field(
        default="100/second",
        alias="INTAKE_RATE_LIMIT",
        description="Per-source moving-window rate limit",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        alias="INTAKE_POLL_INTERVAL_SECONDS",
        gt=0,
    )
    spool_enabled: bool = Field(default=True, alias="INTAKE_SPOOL_ENABLED")
    routes: Dict[str, str] = Field(
        default_factory=dict,
        alias="INTAKE_ROUTES",
        description="Source name to channel name routing table",
    )

    @field_validator("rate_limit", mode="after")
    @classmethod
    def _validate_rate_limit(cls, v: str) -> str:
        try:
            parse(v)
        except ValueError as e:
            raise ValueError(f"Invalid INTAKE_RATE_LIMIT {v!r}: {e}") from e
        return v

    @field_validator("routes", mode="before")
    @classmethod
    def _parse_routes(cls, v: Optional[Any]) -> Any:
        """Parse INTAKE_ROUTES from JSON string or dict."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return v
        if isinstance(v, str):
            s = v.strip()
            try:
                return json.loads(s) if s else {}
            except (json.JSONDecodeError, ValueError) as e:
                raise ValueError(
                    f"Invalid INTAKE_ROUTES JSON: {e} (value: {s[:80]}...)"
                ) from e
        raise ValueError("INTAKE_ROUTES must be a JSON string or a mapping")
