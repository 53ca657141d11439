"""Structured Logging Configuration.

This module configures structlog for the catalog sync engine.
Outputs JSON format for production log aggregation (CloudWatch, Datadog, Splunk)
and a human-readable console format for local development.

Configuration:
- JSON output format (LOG_JSON=true, default)
- Context binding support (correlation IDs, asset IDs, etc.)
- Log levels: DEBUG, INFO, WARNING, ERROR, CRITICAL
"""

import logging
import sys
from typing import Any

import structlog

from catalog_sync.config import get_log_json, get_log_level


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure structlog processors and the stdlib root handler.

    Args:
        level: Log level name, defaults to LOG_LEVEL
        json_output: Render JSON lines, defaults to LOG_JSON
    """
    level_name = level or get_log_level()
    use_json = get_log_json() if json_output is None else json_output
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer: Any = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance for the given module.

    Args:
        name: Module name (typically __name__)

    Returns:
        structlog logger bound with the module name
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]
