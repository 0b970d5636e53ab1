"""Logging configuration for paketdash."""

import logging
import sys
from typing import TextIO

from ..config import Config

# Per-request chatter from the HTTP stack; kept at WARNING or above
NOISY_LOGGERS = ("uvicorn.access", "uvicorn.error", "httpx", "httpcore")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(name: str) -> int:
    """Map a level name like "debug" to its number, INFO when unknown."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | None = None, stream: TextIO | None = None) -> int:
    """Configure root logging for the CLI, the proxy server and the mock backend.

    Logs go to stderr by default so `paketdash snapshot --json` keeps stdout
    parseable.

    Args:
        log_level: Override log level. If None, uses the log_level config value.
        stream: Where to write log lines

    Returns:
        The numeric level applied to the root logger
    """
    if log_level is None:
        log_level = Config().get("log_level", "INFO")
    level = resolve_level(log_level)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream or sys.stderr,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).debug(f"Logging configured with level: {logging.getLevelName(level)}")
    return level
