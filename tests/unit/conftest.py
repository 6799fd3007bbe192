"""Pytest configuration and fixtures for unit tests."""

import pytest

from chorecoin.domain.session import SessionContext
from chorecoin.services import group_service, ledger_service
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches chorecoin.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("chorecoin.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("chorecoin.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("chorecoin.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("chorecoin.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("chorecoin.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("chorecoin.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture
async def group(patched_db):
    """A household with admin PIN 1234."""
    return await group_service.create_group(name="Maple House", admin_pin="1234")


@pytest.fixture
async def members(group):
    """Alice, Bob and Carol, all on zero points."""
    return {
        name.lower(): await ledger_service.add_member(group_id=group["id"], name=name)
        for name in ("Alice", "Bob", "Carol")
    }


@pytest.fixture
def admin_session(group) -> SessionContext:
    return SessionContext(group_id=group["id"], is_admin=True)


@pytest.fixture
def member_session(group, members) -> SessionContext:
    """Session acting as Alice without admin rights."""
    return SessionContext(group_id=group["id"], member_id=members["alice"]["id"])
