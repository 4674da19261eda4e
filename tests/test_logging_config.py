import logging

import pytest
import structlog

from neynar_webhook.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    structlog.reset_defaults()


def test_configure_logging_applies_requested_level():
    configure_logging("warning")

    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_accepts_numeric_level():
    configure_logging(logging.DEBUG)

    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        configure_logging("chatty")
