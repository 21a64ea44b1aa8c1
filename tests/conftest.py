"""Pytest configuration and shared fixtures."""

import pytest

from jsonrpcx.demo import demo_methods, test_auth
from jsonrpcx.server.app import create_app


@pytest.fixture
def demo_app():
    """Starlette app serving the demo `test` namespace with header auth."""
    return create_app(demo_methods(), test_auth)
