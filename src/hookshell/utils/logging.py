"""Logging setup utilities for hookshell.

Selects the log sink (console or file) and configures the package
logger from the logging configuration settings.
"""

from __future__ import annotations

import logging
import sys

from hookshell.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure logging for the hookshell application.

    Sets up the ``hookshell`` logger with the configured level and
    format. Records go to stdout unless ``config.file`` names a log file,
    in which case they are appended there instead.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stdout output).

    Raises:
        OSError: If the log file cannot be opened.
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("hookshell")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    if config.file:
        handler: logging.Handler = logging.FileHandler(config.file, mode="a")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    root_logger.info(
        "Logging initialized at %s level (%s)", config.level, config.file or "stdout"
    )
    return root_logger
