"""Structured logging for the notification bot.

Every module takes its logger from ``get_module_logger()``; delivery code
wraps one notification's processing in ``bind_delivery_context()`` so each
entry it logs carries the notification and worker ids:

    from infrastructure.logging import bind_delivery_context, get_module_logger

    logger = get_module_logger()

    with bind_delivery_context(notification_id="n-1", worker_id="worker-0"):
        logger.info("delivery_attempt_started", attempt=1)
"""

from infrastructure.logging.context import (
    bind_delivery_context,
    clear_delivery_context,
    get_delivery_context,
)
from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)
from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

__all__ = [
    "SENSITIVE_PATTERNS",
    "add_app_info",
    "bind_delivery_context",
    "clear_delivery_context",
    "configure_logging",
    "get_delivery_context",
    "get_logger",
    "get_module_logger",
    "mask_sensitive_data",
    "truncate_large_values",
]
