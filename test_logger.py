"""Tests for logger setup."""

import logging

from embed_pipeline.logger import get_module_logger, setup_logger


def test_repeated_setup_changes_level_only():
    logger = setup_logger(level="DEBUG")
    handlers = list(logger.handlers)

    setup_logger(level="WARNING")

    assert logger.handlers == handlers
    assert logger.level == logging.WARNING
    assert all(handler.level == logging.WARNING for handler in logger.handlers)
    setup_logger(level=logging.INFO)


def test_module_logger_is_child():
    assert get_module_logger("stages").parent is logging.getLogger("embed_pipeline")
