"""Tests for logging configuration."""

import pytest

import logging

from kquai_monitor.helpers.logging import get_logger, loggers, set_log_level


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_named_logger(self) -> None:
        """Test that get_logger returns a logger with the module name."""
        logger = get_logger("kquai_test.window")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "kquai_test.window"

    def test_cached_instance_keeps_first_level(self) -> None:
        """Test repeated calls return the cached logger unchanged."""
        first = get_logger("kquai_test.cached", log_level="DEBUG")
        second = get_logger("kquai_test.cached", log_level="ERROR")

        assert first is second
        assert first.level == logging.DEBUG

    @pytest.mark.parametrize(
        ("level_name", "level"),
        [
            ("DEBUG", logging.DEBUG),
            ("WARNING", logging.WARNING),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_level_applied(self, level_name: str, level: int) -> None:
        """Test the requested level reaches logger and handler."""
        logger = get_logger(f"kquai_test.level_{level_name}", log_level=level_name)

        assert logger.level == level
        assert logger.handlers[-1].level == level

    def test_default_level_is_info(self) -> None:
        """Test get_logger defaults to INFO."""
        assert get_logger("kquai_test.default").level == logging.INFO

    def test_invalid_level_raises(self) -> None:
        """Test that invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="Invalid log level"):
            get_logger("kquai_test.bad_level", log_level="VERBOSE")

    def test_invalid_handler_raises(self) -> None:
        """Test that invalid handler raises ValueError."""
        with pytest.raises(ValueError, match="Invalid handler"):
            get_logger("kquai_test.bad_handler", log_handler="file")

    def test_stderr_with_color(self) -> None:
        """Test colored stderr logger gets a handler."""
        logger = get_logger("kquai_test.color", log_handler="stderr", log_color=True)

        assert len(logger.handlers) > 0

    def test_messages_are_emitted(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that configured logger can log messages."""
        logger = get_logger("kquai_test.emit", log_level="DEBUG")

        with caplog.at_level(logging.DEBUG, logger="kquai_test.emit"):
            logger.debug("Rebuilding window")
            logger.warning("Batch slice failed")

        messages = [record.message for record in caplog.records]
        assert "Rebuilding window" in messages
        assert "Batch slice failed" in messages


class TestSetLogLevel:
    """Tests for set_log_level function."""

    def test_updates_every_cached_logger(self) -> None:
        """Test the new level reaches all loggers and their handlers."""
        get_logger("kquai_test.set_a")
        get_logger("kquai_test.set_b", log_level="DEBUG")

        try:
            set_log_level("ERROR")

            for name in ("kquai_test.set_a", "kquai_test.set_b"):
                logger = loggers[name]
                assert logger.level == logging.ERROR
                assert all(h.level == logging.ERROR for h in logger.handlers)
        finally:
            set_log_level("INFO")

    def test_invalid_level_raises(self) -> None:
        """Test unknown level names are rejected."""
        with pytest.raises(ValueError, match="Invalid log level"):
            set_log_level("LOUD")
