"""Unit tests for group_service."""

import pytest

from chorecoin.core.codes import is_valid_join_code
from chorecoin.core.errors import ConflictError, NotFoundError, ValidationError
from chorecoin.services import group_service


@pytest.mark.unit
class TestCreateGroup:
    """Tests for create_group."""

    async def test_creates_group_with_join_code(self, patched_db):
        group = await group_service.create_group(name="  Maple House ", admin_pin="1234")

        assert group["name"] == "Maple House"
        assert is_valid_join_code(group["code"])
        assert "admin_pin" not in group

    async def test_pin_is_stored(self, patched_db):
        group = await group_service.create_group(name="Maple House", admin_pin="4321")

        stored = patched_db.all("groups")[0]
        assert stored["id"] == group["id"]
        assert stored["admin_pin"] == "4321"

    @pytest.mark.parametrize("pin", ["123", "12345", "12a4", ""])
    async def test_rejects_malformed_pin(self, patched_db, pin):
        with pytest.raises(ValidationError, match="Admin PIN must be exactly 4 digits"):
            await group_service.create_group(name="Maple House", admin_pin=pin)

        assert patched_db.all("groups") == []

    async def test_rejects_blank_name(self, patched_db):
        with pytest.raises(ValidationError, match="name"):
            await group_service.create_group(name="   ", admin_pin="1234")

    async def test_retries_on_code_collision(self, patched_db, monkeypatch):
        first = await group_service.create_group(name="First", admin_pin="1111")
        codes = iter([first["code"], "ABCD-EFGH"])
        monkeypatch.setattr(group_service, "generate_join_code", lambda: next(codes))

        second = await group_service.create_group(name="Second", admin_pin="2222")

        assert second["code"] == "ABCD-EFGH"
        assert len(patched_db.all("groups")) == 2

    async def test_gives_up_after_max_attempts(self, patched_db, monkeypatch):
        first = await group_service.create_group(name="First", admin_pin="1111")
        monkeypatch.setattr(group_service, "generate_join_code", lambda: first["code"])
        monkeypatch.setattr(group_service.settings, "join_code_max_attempts", 3)

        with pytest.raises(ConflictError, match="unique join code"):
            await group_service.create_group(name="Second", admin_pin="2222")

        assert len(patched_db.all("groups")) == 1


@pytest.mark.unit
class TestJoinAndLookup:
    """Tests for get_group and get_group_by_code."""

    async def test_join_code_is_case_insensitive(self, group):
        found = await group_service.get_group_by_code(code=f"  {group['code'].lower()} ")

        assert found["id"] == group["id"]
        assert "admin_pin" not in found

    async def test_unknown_code(self, group):
        with pytest.raises(NotFoundError):
            await group_service.get_group_by_code(code="ZZZZ-ZZZZ")

    async def test_malformed_code(self, group):
        with pytest.raises(NotFoundError, match="No group found"):
            await group_service.get_group_by_code(code='" || code != "')

    async def test_get_group(self, group):
        found = await group_service.get_group(group_id=group["id"])

        assert found == group

    async def test_get_missing_group(self, patched_db):
        with pytest.raises(NotFoundError, match="Group not found"):
            await group_service.get_group(group_id="missing")


@pytest.mark.unit
class TestAdminPin:
    """Tests for verify_admin_pin and rename_group."""

    async def test_correct_pin(self, group):
        assert await group_service.verify_admin_pin(group_id=group["id"], pin="1234") is True

    async def test_pin_surrounding_whitespace_ignored(self, group):
        assert await group_service.verify_admin_pin(group_id=group["id"], pin=" 1234\n") is True

    async def test_wrong_pin(self, group):
        assert await group_service.verify_admin_pin(group_id=group["id"], pin="4321") is False

    async def test_rename(self, group):
        renamed = await group_service.rename_group(group_id=group["id"], name="Oak Flat")

        assert renamed["name"] == "Oak Flat"
        assert renamed["code"] == group["code"]
        assert "admin_pin" not in renamed

    async def test_rename_rejects_blank(self, group):
        with pytest.raises(ValidationError):
            await group_service.rename_group(group_id=group["id"], name=" ")

    async def test_rename_missing_group(self, patched_db):
        with pytest.raises(NotFoundError):
            await group_service.rename_group(group_id="missing", name="Oak Flat")
