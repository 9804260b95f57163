"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from hookshell.config.settings import LoggingConfig
from hookshell.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    """Undo handler and level changes on the package logger."""
    pkg_logger = logging.getLogger("hookshell")
    handlers = list(pkg_logger.handlers)
    level = pkg_logger.level
    yield
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)


class TestSetupLogging:
    def test_defaults_to_console(self) -> None:
        pkg_logger = setup_logging()
        assert pkg_logger.level == logging.INFO
        assert len(pkg_logger.handlers) == 1
        assert isinstance(pkg_logger.handlers[0], logging.StreamHandler)
        assert not isinstance(pkg_logger.handlers[0], logging.FileHandler)

    def test_file_sink(self, tmp_path: Path) -> None:
        log_file = tmp_path / "gateway.log"
        pkg_logger = setup_logging(LoggingConfig(level="debug", file=str(log_file)))
        assert pkg_logger.level == logging.DEBUG
        logging.getLogger("hookshell.gateway.executor").info("execution path=/x")
        for handler in pkg_logger.handlers:
            handler.flush()
        text = log_file.read_text()
        assert "Logging initialized" in text
        assert "execution path=/x" in text

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_logging()
        pkg_logger = setup_logging()
        assert len(pkg_logger.handlers) == 1

    def test_unknown_level_falls_back_to_info(self) -> None:
        pkg_logger = setup_logging(LoggingConfig(level="chatty"))
        assert pkg_logger.level == logging.INFO
