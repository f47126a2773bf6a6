"""Pytest collection helpers for backend test runs."""
import pytest


def pytest_collection_modifyitems(items):
    """Treat legacy pytest.mark.asyncio as anyio-compatible so tests run under the anyio plugin."""
    for item in items:
        if 'asyncio' in getattr(item, 'keywords', {}):
            item.add_marker(pytest.mark.anyio)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"
