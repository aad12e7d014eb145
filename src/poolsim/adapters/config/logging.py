"""Structured logging for poolsim.

Two consumers read these logs: the CLI, whose stdout carries the pool
reports and must stay machine-parseable, and the HTTP server, whose log
lines are shipped as JSON. All records therefore go to stderr, and every
event is tagged with ``component="poolsim"`` so server logs can be told
apart from uvicorn's access log.
"""

import logging
import sys
from collections.abc import Callable
from typing import Any, cast

import structlog
from structlog.typing import EventDict, WrappedLogger

Processor = Callable[[WrappedLogger, str, EventDict], Any]

VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

COMPONENT = "poolsim"


def add_component(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Tag the event with the emitting component unless a caller set one."""
    event_dict.setdefault("component", COMPONENT)
    return event_dict


def _resolve_level(log_level: str) -> int:
    normalized = (log_level or "").upper()
    if normalized not in VALID_LEVELS:
        logging.warning(
            f"Invalid log level '{log_level}', defaulting to INFO. "
            f"Valid levels: {', '.join(sorted(VALID_LEVELS))}"
        )
        normalized = "INFO"
    return getattr(logging, normalized)


def _build_processors(json_output: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_component,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        # Colors only when a terminal is reading stderr
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and stdlib logging to write to stderr.

    Args:
        log_level: Level name, case-insensitive. Unknown names fall back to INFO.
        json_output: JSON lines (server) or console rendering (CLI).
    """
    level = _resolve_level(log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    structlog.configure(
        processors=_build_processors(json_output),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger, named after the calling module when given."""
    return cast(structlog.BoundLogger, structlog.get_logger(name or COMPONENT))
