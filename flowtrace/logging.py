"""Logging helpers shared by the flowtrace CLI and the HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "flowtrace"

CONSOLE_FORMAT = "[{prefix}] %(levelname)s %(message)s"
VERBOSE_CONSOLE_FORMAT = "[{prefix}] %(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the flowtrace hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def console_prefix(component: str | None = None) -> str:
    """Tag console lines with the running component, e.g. ``flowtrace:service``."""
    return f"{_LOGGER_NAME}:{component}" if component else _LOGGER_NAME


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    component: str | None = None,
) -> logging.Logger:
    """Install console and optional file handlers on the flowtrace logger.

    ``component`` names the front end (``cli`` or ``service``) in the console
    prefix. Verbose mode switches to DEBUG and adds the emitting logger name,
    which tells analyzer, tracer and service output apart.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when configured more than once per process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_format = VERBOSE_CONSOLE_FORMAT if verbose else CONSOLE_FORMAT
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(
        logging.Formatter(console_format.format(prefix=console_prefix(component)))
    )
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "console_prefix", "get_logger"]
