"""Pytest configuration for integration tests."""

import asyncio
import tempfile
from pathlib import Path

import httpx
import pytest

from liftlog.db import init_db
from liftlog.web import create_app


# Mark all tests in this directory as integration tests
def pytest_collection_modifyitems(items):
    """Add integration marker to all tests in this directory."""
    for item in items:
        if "integration_tests" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def db_path():
    """A temporary database with the schema in place."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "integration.db"
        asyncio.run(init_db(path))
        yield path


@pytest.fixture
async def http_client(db_path):
    """An httpx client wired straight to the ASGI app."""
    app = create_app(db_path)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://liftlog.test") as client:
        yield client
