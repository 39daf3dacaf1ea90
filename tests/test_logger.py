"""Tests for utils.logger - application logger setup."""
import logging

from utils import app_logger, LoggerSetup


def test_shared_logger_name():
    assert app_logger is logging.getLogger("BannerWatch")
    assert LoggerSetup.setup() is app_logger


def test_setup_runs_once():
    handlers = list(app_logger.handlers)
    LoggerSetup.setup()

    assert app_logger.handlers == handlers


def test_set_level_applies_to_handlers():
    handler = logging.NullHandler()
    app_logger.addHandler(handler)
    previous = app_logger.level
    try:
        LoggerSetup.set_level("warning")

        assert app_logger.level == logging.WARNING
        assert handler.level == logging.WARNING
    finally:
        app_logger.removeHandler(handler)
        app_logger.setLevel(previous)
