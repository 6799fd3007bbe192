"""Pytest configuration and fixtures for integration tests against a real SQLite file."""

import pytest

from chorecoin.core import db_client
from chorecoin.core.config import settings


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Fresh database file with the schema applied, closed after the test."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "chorecoin-test.db"))
    await db_client.init_db()

    yield db_client

    await db_client.close_connection()
