"""Logging sink wiring for the directory client.

The client core only ever calls a ``logging.Logger``; this module decides
where those records go based on the ``logging`` config section.
"""
from __future__ import annotations
import logging
from pathlib import Path

from .settings import LoggingSettings

LOGGER_NAME = "directory_client"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "Debug": logging.DEBUG,
    "Info": logging.INFO,
    "Warn": logging.WARNING,
    "Error": logging.ERROR,
}


def configure_logging(cfg: LoggingSettings, logger_name: str = LOGGER_NAME) -> logging.Logger:
    """Configure and return the client logger.

    Args:
        cfg: Logging settings (enabled, level, file)
        logger_name: Logger to configure (default: package logger)

    Returns:
        The configured logger, suitable for ClientContext.logger
    """
    logger = logging.getLogger(logger_name)

    # Re-configuring replaces handlers we installed earlier
    for handler in list(logger.handlers):
        if getattr(handler, "_directory_client", False):
            logger.removeHandler(handler)
            handler.close()

    if not cfg.enabled:
        null_handler = logging.NullHandler()
        null_handler._directory_client = True
        logger.addHandler(null_handler)
        logger.propagate = False
        return logger

    logger.setLevel(_LEVELS[cfg.log_level])
    logger.propagate = True

    if cfg.log_file:
        log_path = Path(cfg.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        # No file configured: stderr, so Debug/Info records are visible
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._directory_client = True
    logger.addHandler(handler)

    return logger
