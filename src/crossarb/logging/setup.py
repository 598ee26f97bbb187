"""Structured logging configuration for the bot."""

from __future__ import annotations

import logging

import structlog


def _get_shared_processors() -> list[structlog.types.Processor]:
    """Common structlog processors."""

    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog and standard logging.

    `fmt` selects the final renderer: ``json`` for log shipping, ``console``
    for a human-readable terminal.
    """

    renderer: structlog.types.Processor
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *_get_shared_processors(),
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )


__all__ = ["configure_logging"]
