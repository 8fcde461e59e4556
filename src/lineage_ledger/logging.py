"""Structlog-based logging for Lineage Ledger.

Library code logs through structlog only; nothing here prints. Events are
rendered by structlog and emitted through stdlib logging.
"""
from __future__ import annotations

import logging
import os
from typing import Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel | None = None, json_output: bool = True) -> None:
    level = level or os.getenv("LINEAGE_LEDGER_LOG_LEVEL", "INFO").upper()  # type: ignore[assignment]
    numeric = getattr(logging, str(level), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric)
    logging.getLogger().setLevel(numeric)
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "lineage_ledger"):
    return structlog.get_logger(name)


# Initialize default config
configure_logging()
