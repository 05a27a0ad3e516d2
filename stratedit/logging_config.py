"""stratedit logging configuration.

Modules obtain loggers with ``structlog.get_logger(__name__)`` and log events
with structured keyword fields (``logger.info("Saved file", path=path)``).
This module only decides the level and the rendering pipeline; the level is
read from `STRATEDIT_LOG_LEVEL` (default: INFO) and logs go to stderr.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog

from stratedit.constants import ENV_LOG_LEVEL


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if isinstance(level, int):
        return level
    return logging.INFO


def setup_logging(level: Optional[str] = None) -> None:
    """Configure stratedit logging.

    Args:
        level: Optional override for `STRATEDIT_LOG_LEVEL`.
    """
    if level:
        os.environ[ENV_LOG_LEVEL] = level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(os.getenv(ENV_LOG_LEVEL, "INFO"))),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
