"""Infrastructure modules for the notification bot.

Centralized infrastructure components:
- configuration: Settings management (Settings, per-concern settings classes)
- logging: Structured logging (get_module_logger, bind_delivery_context)
- idempotency: Dedup fingerprints and idempotency keys
- operations: Operation results and transport error classification
- persistence: Durable key-value state store (sqlite, memory)
- resilience: Retry policy and backoff computation
- services: Cached providers (get_settings)
"""
