"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int | str = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = False,
) -> None:
    """Configure structlog for the process.

    Console rendering is the default since the CLI is the main consumer;
    pass ``json_format=True`` for machine-readable lines.

    Args:
        level: Logging level as int or name ("DEBUG", "info", ...).
        output: Output stream (default: stderr).
        json_format: Whether to render JSON lines.
    """
    if isinstance(level, str):
        level = level_from_name(level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # httpx logs through the standard library
    logging.basicConfig(format="%(message)s", stream=output, level=level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def level_from_name(name: str) -> int:
    """Translate a level name to its numeric value.

    Args:
        name: Level name, case-insensitive.

    Returns:
        Numeric logging level; unknown names map to INFO.
    """
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_invocation_context(name: str, invocation_id: str) -> None:
    """Bind the definition being run to all subsequent log lines.

    Args:
        name: Definition or template name.
        invocation_id: Unique id of this invocation.
    """
    structlog.contextvars.bind_contextvars(
        definition=name, invocation_id=invocation_id
    )


def clear_invocation_context() -> None:
    """Remove invocation context from log lines."""
    structlog.contextvars.unbind_contextvars("definition", "invocation_id")
