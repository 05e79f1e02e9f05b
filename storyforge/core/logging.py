"""Structured logging configuration using structlog.

Development runs get pretty-printed console output; production runs emit one
JSON object per line for log aggregation.

Usage:
    from storyforge.core.logging import get_logger, configure_logging

    # At process startup
    configure_logging()

    # In modules
    logger = get_logger(__name__)
    logger.info("image_generated", filename="abc.png")
"""

import logging
import sys
from os import getenv
from typing import Any, cast

import structlog
from structlog.types import Processor


def configure_logging(
    development: bool | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        development: If True, use pretty-printed output. If False, use JSON.
                    If None, reads from ENVIRONMENT env var (default: development).
        log_level: Log level string (DEBUG, INFO, WARNING, ERROR).
                  If None, reads from LOG_LEVEL env var (default: INFO).
    """
    if development is None:
        env = getenv("ENVIRONMENT", "development").lower()
        development = env != "production"

    if log_level is None:
        log_level = getenv("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level, logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if development:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # force=True overrides whatever uvicorn installed first
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    logging.getLogger().setLevel(numeric_level)

    # Quiet the HTTP client libraries
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def bind_contextvars(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent log calls.

    Example:
        bind_contextvars(client_key="203.0.113.7")
        logger.info("generating")  # Will include client_key
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_contextvars() -> None:
    """Clear all bound context variables at the end of a request."""
    structlog.contextvars.clear_contextvars()
