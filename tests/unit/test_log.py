"""Unit tests for logging setup."""

import logging

import pytest
import structlog

from arbopt.log import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_accepts_level_names_and_constants():
    configure_logging("debug")
    configure_logging(logging.WARNING)

    assert structlog.is_configured()


def test_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("nope")
