"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.channels import (
    ChannelSettings,
    KNOWN_CHANNELS,
)
from infrastructure.configuration.integrations.escalation import EscalationSettings

__all__ = [
    "ChannelSettings",
    "EscalationSettings",
    "KNOWN_CHANNELS",
]
