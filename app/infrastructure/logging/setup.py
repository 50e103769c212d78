"""Structlog configuration for the notification bot.

Logging is configured once, on first import of ``infrastructure.logging``.
Every module then takes a logger bound to its own path:

    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("entry_leased", notification_id="abc", worker_id="worker-0")

Development (PREFIX set) renders to the console, production renders JSON
lines on stdout. Under pytest nothing is emitted.
"""

import inspect
import logging
import sys
from types import ModuleType
from typing import Any, List, Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)
from infrastructure.services.providers import get_logging_settings

APP_NAME = "notification_bot"

SILENT = logging.CRITICAL + 1


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def _processors(app_version: str, prod_mode: bool) -> List[Any]:
    processors: List[Any] = [
        # notification_id, worker_id, source bound per delivery
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_app_info(APP_NAME, app_version),
        mask_sensitive_data(),
        truncate_large_values(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if prod_mode:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
    app_version: Optional[str] = None,
) -> BoundLogger:
    """Configure structlog and the standard library root logger.

    Args:
        log_level: Overrides LOG_LEVEL
        is_production: Overrides the PREFIX-based JSON/console choice
        app_version: Overrides GIT_SHA as the version stamped on every entry

    Returns:
        The root structlog logger
    """
    if _is_test_environment():
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", level=SILENT, force=True)
        return structlog.stdlib.get_logger()

    settings = get_logging_settings()
    prod_mode = settings.is_production if is_production is None else is_production
    level_name = (log_level or settings.LOG_LEVEL).upper()

    structlog.configure(
        processors=_processors(app_version or settings.GIT_SHA, prod_mode),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
        stream=sys.stdout,
        force=True,
    )
    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def _caller_module() -> Optional[ModuleType]:
    # two frames up: past this helper and the get_*logger function
    frame = inspect.currentframe()
    for _ in range(2):
        if frame is None:
            return None
        frame = frame.f_back
    return inspect.getmodule(frame) if frame is not None else None


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Logger bound to ``logger_name``; the calling module's name by default."""
    if name:
        return logger.bind(logger_name=name)
    module = _caller_module()
    return logger.bind(logger_name=module.__name__ if module else "unknown")


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module's component and dotted path.

    Example:
        # In modules/dispatch/queue.py
        logger = get_module_logger()
        # context: {"component": "queue", "module_path": "modules.dispatch.queue"}
    """
    module = _caller_module()
    if module is None:
        return logger.bind(component="unknown")
    return logger.bind(
        component=module.__name__.rsplit(".", 1)[-1],
        module_path=module.__name__,
    )
