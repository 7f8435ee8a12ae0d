"""Logging setup; no global state beyond the logging tree."""

from __future__ import annotations

import logging
import sys
from typing import Any

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module/component. No side effects."""
    return logging.getLogger(name)


def setup_logging(
    level: str = "INFO",
    format_string: str | None = None,
    stream: Any = None,
) -> None:
    """
    Configure root logger once. Logs go to stderr by default so the CLI can print
    JSON results on stdout.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or DEFAULT_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=stream or sys.stderr,
        force=True,
    )
    # pypdf is chatty about malformed-but-readable files
    logging.getLogger("pypdf").setLevel(max(logging.WARNING, logging.getLogger().level))


def log_structured(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """Emit a log record with extra keys for structured aggregation."""
    logger.log(level, msg, extra=kwargs)
