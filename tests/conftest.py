"""Pytest configuration and fixtures."""

import os

import pytest

from context_engine.core.config import get_settings


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["CONTEXT_ENGINE_ENV"] = "test"
    os.environ.pop("DEFAULT_CONTEXT_TOKENS", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
