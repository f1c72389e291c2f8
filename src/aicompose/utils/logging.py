"""Structured logging for aicompose.

The terminal belongs to the dialog, so log events are written as JSON lines
to a file instead of stdout/stderr:

    AICOMPOSE_LOG_LEVEL=DEBUG aicompose edit teaser.txt
    tail -f ~/.cache/aicompose/logs/aicompose.log | jq .

DEBUG adds LLM request payloads, raw stream lines and snapshot contents to
the INFO events (user actions, request summaries). Retries, truncation and
failed content retrieval are warnings; generation and write-back failures
are errors.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import structlog

LOG_LEVEL_ENV = "AICOMPOSE_LOG_LEVEL"


def default_log_path() -> Path:
    return Path.home() / ".cache" / "aicompose" / "logs" / "aicompose.log"


def log_level_from_env() -> int:
    """Level named by AICOMPOSE_LOG_LEVEL; unset or unknown names mean INFO."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_path: Optional[Path] = None, level: Optional[int] = None) -> Path:
    """
    Route structlog events to a JSON lines file.

    Args:
        log_path: Log file, appended to (default: ~/.cache/aicompose/logs/aicompose.log)
        level: Minimum level (default: from AICOMPOSE_LOG_LEVEL)

    Returns:
        The log file in use
    """
    log_path = log_path or default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if level is None:
        level = log_level_from_env()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=log_path.open("a", encoding="utf-8")),
        cache_logger_on_first_use=True,
    )
    return log_path


def get_logger(name: str) -> Any:
    """Logger whose events carry the emitting module's name."""
    # Stays lazy: modules call this at import time, before configure_logging()
    return structlog.get_logger(module=name)
