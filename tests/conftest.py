"""
Pytest configuration and fixtures for throttled_queue tests.
"""

import pytest

from throttled_queue import QueueRegistry


@pytest.fixture
def shared_store():
    """Create a fresh shared store for each test."""
    return {}


@pytest.fixture
def sample_items():
    """Sample items for batch processing tests."""
    return list(range(10))


@pytest.fixture
def clean_registry():
    """Reset the shared queue registry before and after a test."""
    QueueRegistry.reset()
    yield
    QueueRegistry.reset()
