"""
Tests for logging setup.
"""
import logging

import structlog

from bittrex_api import setup_logging


def test_setup_logging_quiets_transport_libraries():
    setup_logging(verbose=True)

    assert logging.getLogger("websockets").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    assert structlog.is_configured()

    structlog.reset_defaults()
