"""Tests for the logging setup module."""

import logging

from smart_invoice.utils.logger import get_logger, setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def setup_method(self) -> None:
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.root.handlers.clear()

    def teardown_method(self) -> None:
        self.root.handlers[:] = self.saved_handlers

    def test_setup_creates_handler(self) -> None:
        setup_logging("DEBUG")
        assert len(self.root.handlers) >= 1
        assert self.root.level == logging.DEBUG

    def test_setup_idempotent(self) -> None:
        setup_logging("INFO")
        count = len(self.root.handlers)
        setup_logging("INFO")
        assert len(self.root.handlers) == count

    def test_setup_invalid_level_defaults_to_info(self) -> None:
        setup_logging("NONEXISTENT")
        assert self.root.level == logging.INFO

    def test_http_libraries_quieted(self) -> None:
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
        setup_logging("DEBUG")
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_quiet_libraries_can_be_disabled(self) -> None:
        logging.getLogger("httpcore").setLevel(logging.NOTSET)
        setup_logging("DEBUG", quiet_libraries=False)
        assert logging.getLogger("httpcore").level == logging.NOTSET


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("test.module")
        assert logger.name == "test.module"
        assert isinstance(logger, logging.Logger)

    def test_same_name_returns_same_logger(self) -> None:
        assert get_logger("test.same") is get_logger("test.same")
