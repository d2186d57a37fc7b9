"""structlog setup for applications that drive the risk computations.

The library itself only calls ``structlog.get_logger``; the process that
embeds it decides how events are rendered by calling configure_structlog once
at start-up.
"""

from __future__ import annotations

import logging

import structlog

from riskstats.config import Settings


def configure_structlog(level: str = "INFO", json_logs: bool = False) -> None:
    """Set up structlog with console (default) or JSON output.

    Args:
        level: Minimum level name to emit ("DEBUG", "INFO", "WARNING", ...)
        json_logs: Render events as JSON lines instead of the console renderer
    """
    level_no = logging.getLevelName(level.upper())
    if not isinstance(level_no, int):
        raise ValueError(f"Unknown log level: {level}")

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Settings) -> None:
    """Apply LOG_LEVEL / LOG_JSON from a Settings instance."""
    configure_structlog(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
