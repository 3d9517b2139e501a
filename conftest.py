"""Pytest configuration for GxP Validation Analytics."""

import pytest

from gxp_analytics.config import set_config


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "gxp: mark test as GxP compliance test")


@pytest.fixture(autouse=True)
def reset_analytics_config():
    """Give every test a fresh global configuration."""
    set_config(None)
    yield
    set_config(None)
