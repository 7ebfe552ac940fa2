"""
Structured logging: structlog wrapping stdlib logging.

Console output in development, one JSON object per line when
LOG_FORMAT=json (Railway / Render capture stdout/stderr as-is).

Usage:
    from sipsense.core.logging_config import get_logger, setup_logging
    setup_logging()
    log = get_logger(__name__)
    log.info("behavior_appended", log="hydration", total=12)
"""
from __future__ import annotations

import logging
import sys

import structlog

from sipsense.core.config import settings


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    if level is None:
        level = settings.LOG_LEVEL
    if json_output is None:
        json_output = settings.LOG_FORMAT.lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["get_logger", "setup_logging"]
