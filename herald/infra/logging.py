"""
Structured Logging Configuration.

herald modules log through structlog with key/value context (event ids,
content modes, legacy types). A server embedding herald calls
configure_logging() once at startup; its request adapter binds per-request
values with bind_request_context().
"""

import logging
import sys
from typing import Any, TextIO

import structlog


def _processors(json_format: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_format:
        # Tracebacks become a plain "exception" field.
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def configure_logging(log_level: str = "INFO", json_format: bool = False, stream: TextIO | None = None) -> None:
    """
    Configure structlog for herald.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ...). Unknown
            names fall back to INFO.
        json_format: One JSON object per line instead of console output.
        stream: Destination, stdout by default.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """
    Bind key/value pairs (e.g. a request id) to every log line emitted in the
    current context until clear_request_context() is called.
    """
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
