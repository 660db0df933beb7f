"""Pytest configuration for the davenport test suite.

Key Principles:
- Drivers are faked through function attributes (fixtures.mocks)
- The memory backend stands in for a server in integration tests
- HTTP tests run against httpx.MockTransport, never a live server
"""

import sys
from pathlib import Path

import pytest

# tests directory (for fixtures.*)
tests_root = Path(__file__).parent
if str(tests_root) not in sys.path:
    sys.path.insert(0, str(tests_root))

from fixtures.mocks.driver_mocks import make_memory_client  # noqa: E402
from davenport.backends.memory import reset_shared_servers  # noqa: E402


@pytest.fixture
def memory_driver(mock_logger):
    """A private in-memory driver client."""
    return make_memory_client(logger=mock_logger)


@pytest.fixture(autouse=True)
def _fresh_shared_servers():
    reset_shared_servers()
    yield
    reset_shared_servers()


# =============================================================================
# PYTEST MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (may use mocks)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests running several components against the memory backend"
    )
    config.addinivalue_line(
        "markers", "slow: Slow-running tests"
    )
