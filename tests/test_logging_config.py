"""
Tests for logging setup and error tracking.
"""

import logging

import pytest

from netmeta.config import LogConfig
from netmeta.errors import ConfigurationError
from netmeta.logging_config import ErrorTracker, configure_logging, setup_logging


@pytest.fixture(autouse=True)
def restore_package_logger():
    yield
    logger = logging.getLogger("netmeta")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


class TestSetupLogging:
    """Handlers and levels."""

    def test_console_only(self):
        logger = setup_logging("warning")

        assert logger.name == "netmeta"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_unknown_level(self):
        with pytest.raises(ConfigurationError):
            setup_logging("chatty")

    def test_file_records_peer(self, tmp_path):
        path = tmp_path / "logs" / "netmeta.log"
        setup_logging("INFO", log_file=str(path), enable_console=False)

        logging.getLogger("netmeta.bgp.registry").info("flap", extra={"peer": "10.0.0.1"})
        logging.getLogger("netmeta.ospf.topology").info("merged")
        for handler in logging.getLogger("netmeta").handlers:
            handler.flush()

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert "| 10.0.0.1" in lines[0]
        assert lines[0].endswith("| flap")
        assert "| -" in lines[1]

    def test_configure_from_config(self, tmp_path):
        path = tmp_path / "netmeta.log"
        logger = configure_logging(LogConfig(level="ERROR", file=str(path)))

        assert logger.level == logging.ERROR
        assert len(logger.handlers) == 2

    def test_debug_overrides_level(self):
        logger = configure_logging(LogConfig(level="ERROR"), debug=True)
        assert logger.level == logging.DEBUG


class TestErrorTracker:
    """Counting by type."""

    def test_counts_and_last(self, caplog):
        errors = ErrorTracker()

        with caplog.at_level(logging.ERROR):
            errors.log_error("withdraw_failed", "first", context={"peer": "10.0.0.1"})
            errors.log_error("withdraw_failed", "second")
            errors.log_error("session_refresh", "down")

        assert errors.get_error_counts() == {"withdraw_failed": 2, "session_refresh": 1}
        last = errors.last_error("withdraw_failed")
        assert last.message == "second"
        assert last.context == {}
        assert caplog.records[0].peer == "10.0.0.1"
        assert "withdraw_failed: first" in caplog.records[0].getMessage()

    def test_reset(self):
        errors = ErrorTracker()
        errors.log_error("session_refresh", "down")

        errors.reset_counts()

        assert errors.get_error_counts() == {}
        assert errors.last_error("session_refresh") is None
