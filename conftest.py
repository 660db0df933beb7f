"""Root conftest.py for davenport tests.

This file MUST be at the repository root for fixtures to be discovered
when running tests from any subdirectory.

Provides shared fixtures used across all test modules.
"""

import pytest
from unittest.mock import MagicMock

from davenport.scope import background
from davenport.settings import reset_settings


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    bind() returns the same mock, so calls made by component-bound
    loggers are visible on the fixture.
    """
    logger = MagicMock()
    logger.info = MagicMock()
    logger.debug = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    logger.bind = MagicMock(return_value=logger)
    return logger


@pytest.fixture
def scope():
    """A fresh root scope, cancelled after the test."""
    root = background()
    yield root
    root.cancel()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep tests independent of the caller's DAVENPORT_* environment."""
    for name in ("DRIVER", "DSN", "HTTP_TIMEOUT", "HTTP_VERIFY_TLS", "LOG_LEVEL", "LOG_JSON"):
        monkeypatch.delenv(f"DAVENPORT_{name}", raising=False)
    reset_settings()
    yield
    reset_settings()
