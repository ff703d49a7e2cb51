"""Tests for logging configuration."""

import logging

from nutrition_lookup.app_logging import configure_logging


def test_configure_logging_installs_one_handler() -> None:
    logger = logging.getLogger("nutrition_lookup")
    logger.handlers.clear()

    configure_logging()
    configure_logging("DEBUG")

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_configure_logging_silences_request_urls() -> None:
    logging.getLogger("httpx").setLevel(logging.INFO)

    configure_logging()

    assert logging.getLogger("httpx").level == logging.WARNING
