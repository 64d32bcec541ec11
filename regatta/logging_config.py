"""
Centralized logging configuration for the regatta backend.

Usage:
- Production (default): concise INFO-level logs.
- Debugging tie-breaks or schedules: set LOG_LEVEL=DEBUG (or call setup_logging(level="DEBUG"))
  to see every cascade step and pairing filter.

Environment variables:
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL
"""
from __future__ import annotations

import logging
import sys
from typing import Literal, Optional

from regatta import config

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _resolve_level(level: Optional[str]) -> int:
    level_str = (level or config.LOG_LEVEL or "INFO").upper()
    return _LEVELS.get(level_str, logging.INFO)


def setup_logging(level: Optional[LogLevel] = None, mode: Optional[Literal["test", "prod"]] = None) -> None:
    """Configure the root logger.

    Args:
        level: Optional level name. If omitted, uses LOG_LEVEL env var or INFO.
        mode: Optional hint ("test"|"prod"); "test" forces the verbose format.
    """
    numeric_level = _resolve_level(level)

    # Avoid duplicate handlers if re-configuring
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    is_debug = numeric_level <= logging.DEBUG
    fmt_verbose = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
    fmt_concise = "%(levelname).1s %(name)s: %(message)s"
    fmt = fmt_verbose if (mode == "test" or is_debug) else fmt_concise

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))

    root.setLevel(numeric_level)
    root.addHandler(handler)

    # Server access logs are noisy at DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.INFO if is_debug else logging.WARNING)
