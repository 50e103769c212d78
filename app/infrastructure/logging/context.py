"""Delivery context binding for structured logging.

Binds notification and worker identifiers to structlog's context variables
so every log entry emitted while an entry is processed carries them.

Usage:
    from infrastructure.logging import bind_delivery_context

    with bind_delivery_context(notification_id=entry.notification_id, worker_id="worker-1"):
        logger.info("delivery_started")

Dependencies:
    - structlog.contextvars
"""

from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_delivery_context(
    notification_id: Optional[str] = None,
    worker_id: Optional[str] = None,
    source: Optional[str] = None,
    channel: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind delivery-scoped context to all logs within the context manager.

    Only non-None values are bound. Previously bound values for the same keys
    are restored on exit, so nested blocks compose.

    Args:
        notification_id: Notification being processed.
        worker_id: Worker thread processing it.
        source: Event source that produced it.
        channel: Channel it is delivered to.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars.
    """
    context: dict[str, Any] = {}

    if notification_id is not None:
        context["notification_id"] = notification_id

    if worker_id is not None:
        context["worker_id"] = worker_id

    if source is not None:
        context["source"] = source

    if channel is not None:
        context["channel"] = channel

    context.update(extra_context)

    tokens = structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def get_delivery_context() -> dict[str, Any]:
    """Return a copy of the currently bound logging context."""
    return dict(structlog.contextvars.get_contextvars())


def clear_delivery_context() -> None:
    """Clear all bound context.

    Worker threads call this at the start of their loop so no context leaks
    between entries.
    """
    structlog.contextvars.clear_contextvars()
