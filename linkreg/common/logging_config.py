"""Logging configuration for the link registry service."""

import logging
import sys
from typing import Optional

# Uvicorn's own loggers share the service handlers so request and
# registry lines land in the same stream
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    return logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    include_server: bool = True,
) -> logging.Logger:
    """Route registry and server logs through one set of handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, shared by every configured logger
        json_format: Emit one JSON object per line
        include_server: Also configure the uvicorn loggers

    Returns:
        The ``linkreg`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = _build_formatter(json_format)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)

    names = ("linkreg",) + (SERVER_LOGGERS if include_server else ())
    for name in names:
        target = logging.getLogger(name)
        target.setLevel(numeric_level)
        target.handlers.clear()
        for handler in handlers:
            target.addHandler(handler)
        # "uvicorn.error" would otherwise repeat through "uvicorn"
        target.propagate = name == "linkreg"

    return logging.getLogger("linkreg")
