"""Tests for the socialpay logger setup."""

import io
import json
import logging

import pytest

from socialpay.core.logging import LOGGER_NAME, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestConfigureLogging:
    def test_json_lines_escape_messages(self) -> None:
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream)

        get_logger("payments").info('revert: "Insufficient balance"\nsecond line')

        entry = json.loads(stream.getvalue())
        assert entry["message"] == 'revert: "Insufficient balance"\nsecond line'
        assert entry["level"] == "INFO"
        assert entry["name"] == "socialpay.payments"
        assert "timestamp" in entry

    def test_json_includes_traceback(self) -> None:
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream)

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("orchestrator").exception("Unexpected error")

        entry = json.loads(stream.getvalue())
        assert "RuntimeError: boom" in entry["exc_info"]

    def test_text_format(self) -> None:
        stream = io.StringIO()
        configure_logging(level="DEBUG", stream=stream)

        get_logger("store").debug("Proposed 10 to @alice")

        assert stream.getvalue().rstrip().endswith("DEBUG [socialpay.store] Proposed 10 to @alice")

    def test_reconfigure_replaces_handler(self) -> None:
        configure_logging()
        logger = configure_logging(level=logging.WARNING)

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_level_filters_records(self) -> None:
        stream = io.StringIO()
        configure_logging(level=logging.WARNING, stream=stream)

        get_logger("store").info("hidden")

        assert stream.getvalue() == ""


class TestGetLogger:
    def test_child_logger(self) -> None:
        assert get_logger("ledger").name == "socialpay.ledger"

    def test_package_logger(self) -> None:
        assert get_logger().name == "socialpay"
