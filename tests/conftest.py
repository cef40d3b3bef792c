"""Pytest fixtures for schemagraph tests."""

import pytest

from schemagraph.config.settings import Settings, get_settings
from schemagraph.observability.logging import clear_context


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        graph_cache_capacity=2,
    )


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Drop cached settings and bound log context between tests."""
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()
