"""
Global pytest fixtures for the project.
"""

import pytest

from config import TestingConfig
from main import create_app


@pytest.fixture
def app():
    """
    Fresh application per test, built with the testing configuration
    (rate limiting disabled).

    Returns:
        Flask: Configured application instance.
    """
    return create_app(TestingConfig)


@pytest.fixture
def client(app):
    """Flask test client bound to the ``app`` fixture."""
    return app.test_client()


@pytest.fixture
def limited_app():
    """
    Application with a tiny fixed-window limit so tests can exhaust it.
    """

    class LimitedConfig(TestingConfig):
        RATELIMIT_ENABLED = True
        RATELIMIT_APPLICATION = '2 per minute'

    return create_app(LimitedConfig)
