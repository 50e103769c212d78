"""Fingerprint builder for dedup keys and notification ids."""

import hashlib
import json
from datetime import datetime
from typing import Any, Optional


def canonical_json(value: Any) -> str:
    """Serialize a JSON-compatible value with sorted keys and no whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class FingerprintBuilder:
    """Build deterministic fingerprints for incoming events.

    The dedup fingerprint covers the namespace, the event source and either
    the caller-supplied dedup key or the canonical JSON of the payload, so two
    sources never collide and reordering payload keys never defeats dedup.

    Example:
        >>> builder = FingerprintBuilder(namespace="notification_bot")
        >>> fp = builder.fingerprint("alerts", dedup_key="disk-full:web-1")
        >>> len(fp)
        64
    """

    def __init__(self, namespace: str):
        """Initialize the builder.

        Args:
            namespace: Namespace for key isolation between deployments
        """
        self.namespace = namespace

    def fingerprint(
        self,
        source: str,
        dedup_key: Optional[str] = None,
        payload: Optional[Any] = None,
    ) -> str:
        """Build the dedup fingerprint of an event.

        Args:
            source: Event source name
            dedup_key: Explicit dedup key; takes precedence over the payload
            payload: Event payload, used when no dedup key is given

        Returns:
            Hex sha256 digest
        """
        if dedup_key is not None:
            material = f"key={dedup_key}"
        else:
            material = f"payload={canonical_json(payload)}"

        key_string = "|".join([self.namespace, source, material])
        return hashlib.sha256(key_string.encode()).hexdigest()

    @staticmethod
    def notification_id(fingerprint: str, created_at: datetime) -> str:
        """Derive a notification id from its fingerprint and creation time.

        A re-submission after the dedup window has a different creation time
        and therefore a distinct id.
        """
        key_string = f"{fingerprint}|{created_at.isoformat()}"
        return hashlib.sha256(key_string.encode()).hexdigest()
