"""Fingerprints for event deduplication and notification identity.

Usage:

    from infrastructure.idempotency import FingerprintBuilder

    builder = FingerprintBuilder(namespace=settings.dedup.namespace)
    fingerprint = builder.fingerprint(source, dedup_key=dedup_key, payload=payload)
    notification_id = builder.notification_id(fingerprint, created_at)
"""

from infrastructure.idempotency.fingerprint import FingerprintBuilder, canonical_json

__all__ = [
    "FingerprintBuilder",
    "canonical_json",
]
