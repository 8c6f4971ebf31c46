"""Test logging configuration."""

import logging
from pathlib import Path

import structlog
from structlog.testing import LogCapture

from ssh_tunnel.logging import ASYNCSSH_LOGGER, get_logger, setup_logging


class TestLogging:
    """Test logging functionality."""

    def setup_method(self) -> None:
        """Reset logging configuration before each test."""
        structlog.reset_defaults()
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        logging.getLogger(ASYNCSSH_LOGGER).setLevel(logging.NOTSET)

    def test_setup_logging_default(self) -> None:
        setup_logging()
        logger = get_logger("test")

        assert logger is not None
        assert hasattr(logger, "info")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_with_level(self) -> None:
        """Test logging setup with custom level."""
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_asyncssh_logger_quieted_by_default(self) -> None:
        """Test asyncssh's per-channel INFO logging is suppressed."""
        setup_logging(level="DEBUG")

        assert logging.getLogger(ASYNCSSH_LOGGER).level == logging.WARNING

    def test_asyncssh_level_configurable(self) -> None:
        setup_logging(asyncssh_level="debug")

        assert logging.getLogger(ASYNCSSH_LOGGER).level == logging.DEBUG

    def test_setup_logging_replaces_handlers(self) -> None:
        """Test repeated setup does not stack console handlers."""
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_setup_logging_json_format(self) -> None:
        """Test logging setup with JSON format."""
        setup_logging(json_format=True)
        logger = get_logger("test")

        cap = LogCapture()
        structlog.configure(processors=[cap])

        logger.info("tunnel listening", port=5432)

        assert len(cap.entries) == 1
        assert cap.entries[0]["event"] == "tunnel listening"
        assert cap.entries[0]["port"] == 5432

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        """Test logging setup with file output."""
        log_file = tmp_path / "tunnel.log"
        setup_logging(log_file=str(log_file))

        logging.getLogger("test_file").info("test message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "test message" in log_file.read_text()
