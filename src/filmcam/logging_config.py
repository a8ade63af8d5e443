"""
Structured logging for filmcam.

Everything logs through structlog with snake_case event names and keyword
context. Pipeline code binds request context (``operation``, ``user_id``,
``photo_id``) with ``log_context`` so every event emitted while a capture
or edit runs carries it, across ``await`` points and into worker threads
started with ``asyncio.to_thread``.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

PERFORMANCE_LOGGER = "filmcam.performance"
USER_ACTION_LOGGER = "filmcam.user_actions"
ERROR_LOGGER = "filmcam.errors"


def get_log_level() -> int:
    """Log level from LOG_LEVEL, INFO when unset or unknown."""
    return LOG_LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def is_development_environment() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local"]


def configure_structured_logging() -> None:
    """
    Configure structlog and the standard library root logger.

    Development renders human-readable console lines (coloured on a TTY);
    every other environment writes one JSON object per line to stderr.
    Streamlit reruns the entry script on each interaction, so this may be
    called repeatedly.
    """
    log_level = get_log_level()
    is_dev = is_development_environment()
    use_colors = is_dev and sys.stderr.isatty()

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(log_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer(colors=use_colors))
    else:
        processors.extend([structlog.processors.format_exc_info, structlog.processors.JSONRenderer()])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger("filmcam.logging").debug(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
        colors_enabled=use_colors,
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        structlog.BoundLogger: Logger carrying any context bound by ``log_context``
    """
    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Record how long a pipeline stage took.

    Args:
        operation: Stage name, e.g. ``grab_frame``, ``encode``, ``upload``
        duration: Duration in seconds
        **context: Sizes, attempt counts and similar
    """
    get_logger(PERFORMANCE_LOGGER).info(
        "performance_metric", operation=operation, duration_ms=round(duration * 1000, 2), **context
    )


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """Audit trail entry for something a user did (captured, edited, changed settings)."""
    get_logger(USER_ACTION_LOGGER).info("user_action", user_id=user_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log an error with its type, message and classification context.

    Args:
        error: Exception that occurred
        context: Category, code and details of the error
    """
    get_logger(ERROR_LOGGER).error(
        "error_occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        **(context or {}),
    )


@contextmanager
def log_context(**context: Any) -> Iterator[Any]:
    """
    Bind ``context`` to every event logged inside the block.

    Exceptions escaping the block are logged once with the bound context,
    then re-raised.
    """
    with structlog.contextvars.bound_contextvars(**context):
        logger = get_logger("filmcam.context")
        try:
            yield logger
        except Exception as e:
            logger.error("context_exception", exception_type=type(e).__name__, exception_message=str(e))
            raise
