"""
test_logging_config.py — Tests for abibuch/logging_config.py

Verifies Loguru setup, stdlib logging interception, and request
context binding. Uses loguru's sink capture for assertions.

Called by: pytest
Depends on: abibuch/logging_config.py
"""

import logging
import os
from unittest.mock import patch

import pytest
from loguru import logger

from abibuch.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    """Start each test without handlers or default extras, and leave it that way."""
    logger.remove()
    logger.configure(extra={})
    yield
    logger.remove()
    logger.configure(extra={})


def test_setup_logging_adds_handler():
    assert len(logger._core.handlers) == 0
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    assert len(logger._core.handlers) > 0


def test_stdlib_logging_intercepted():
    """After setup, logging.getLogger() messages from the services reach Loguru."""
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()

    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")

    logging.getLogger("abibuch.services.ranking_service").warning("Rankings auto-retracted")

    assert any("Rankings auto-retracted" in m for m in messages)


def test_log_level_from_env():
    with patch.dict(os.environ, {"APP_ENV": "development", "LOG_LEVEL": "WARNING"}):
        setup_logging()

    messages = []
    logger.add(lambda m: messages.append(str(m)), level="WARNING", format="{message}")

    logger.debug("should be filtered")
    logger.warning("should appear")

    assert any("should appear" in m for m in messages)
    assert not any("should be filtered" in m for m in messages)


def test_context_binding():
    """The request middleware's contextualize() adds request_id to records."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc12345"):
        logger.info("request log")

    assert records[-1]["extra"].get("request_id") == "abc12345"


def test_context_not_leaked():
    """Outside a request the record falls back to the "-" placeholder."""
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc12345"):
        logger.info("inside")
    logger.info("outside")

    assert records[-1]["extra"]["request_id"] == "-"


def test_production_mode_uses_serialize():
    """APP_ENV=production writes JSON lines (serialize=True)."""
    with patch.dict(os.environ, {"APP_ENV": "production"}):
        # Keep the rotating file sink off the disk
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
            serialize_calls = [c for c in mock_add.call_args_list if c.kwargs.get("serialize") is True]
            assert len(serialize_calls) == 2


def test_noisy_loggers_quieted():
    with patch.dict(os.environ, {"APP_ENV": "development"}):
        setup_logging()
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
