# src/mixtrack/logging.py
"""Structured logging configuration for mixtrack.

Uses structlog routed through stdlib logging so that host applications
keep control of the root logger. init_mixpanel() calls configure_logging()
with its debug flag: warnings and errors are always shown, per-call
diagnostics only in debug mode.

Diagnostics go to stderr: analytics output must never mix with a host
application's stdout.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# httpx/httpcore log every request at DEBUG, which drowns out tracking lines
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove the bookkeeping fields ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    debug: bool = False,
    json_output: bool = False,
) -> None:
    """Configure structlog and stdlib logging for mixtrack.

    Only the ``mixtrack`` logger hierarchy is touched; the root logger and
    its handlers belong to the host application.

    Args:
        debug: If True, emit DEBUG lines (every init attempt, queue and
            tracking call). Otherwise WARNING and above.
        json_output: If True, output JSON. If False, human-readable.
    """
    log_level = logging.DEBUG if debug else logging.WARNING

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Disable caching to allow reconfiguration in tests
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    package_logger = logging.getLogger("mixtrack")
    package_logger.handlers = [handler]
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)
