"""Unit tests for the SQL-building helpers in db_client."""

from datetime import date

import pytest

from chorecoin.core import db_client


@pytest.mark.unit
class TestParseFilter:
    """Tests for parse_filter."""

    def test_empty(self):
        assert db_client.parse_filter("") == ("", [])

    def test_single_comparison(self):
        clause, params = db_client.parse_filter('code = "ABCD-EFGH"')

        assert clause == "code = ?"
        assert params == ["ABCD-EFGH"]

    def test_digit_values_become_integers(self):
        clause, params = db_client.parse_filter('group_id = "12" && status != "completed"')

        assert clause == "group_id = ? AND status != ?"
        assert params == [12, "completed"]

    def test_or_group(self):
        clause, params = db_client.parse_filter('group_id = "3" && (status = "available" || status = "claimed")')

        assert clause == "group_id = ? AND (status = ? OR status = ?)"
        assert params == [3, "available", "claimed"]

    def test_like_escapes_wildcards(self):
        clause, params = db_client.parse_filter('name ~ "50%_off"')

        assert clause == "name LIKE ? ESCAPE '\\'"
        assert params == ["%50\\%\\_off%"]

    def test_invalid_syntax(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            db_client.parse_filter("status available")


@pytest.mark.unit
class TestParseSort:
    """Tests for parse_sort."""

    def test_multiple_terms(self):
        assert db_client.parse_sort("-points,+id") == "points DESC, id ASC"

    def test_unprefixed_term_is_ascending(self):
        assert db_client.parse_sort("due_date") == "due_date ASC"

    def test_suffix_direction(self):
        assert db_client.parse_sort("timestamp desc") == "timestamp DESC"

    def test_injection_attempt_is_dropped(self):
        assert db_client.parse_sort("points; DROP TABLE members") == "id ASC"

    def test_invalid_terms_skipped(self):
        assert db_client.parse_sort("-timestamp, 1=1, -id") == "timestamp DESC, id DESC"


@pytest.mark.unit
class TestValueConversion:
    """Tests for storage conversion helpers."""

    def test_reference_ids_stored_as_integers(self):
        assert db_client._to_db_value("claimed_by", "42") == 42
        assert db_client._to_db_value("group_id", "7") == 7

    def test_plain_digit_strings_untouched(self):
        assert db_client._to_db_value("name", "1234") == "1234"
        assert db_client._to_db_value("admin_pin", "0042") == "0042"

    def test_dates_serialized(self):
        assert db_client._to_db_value("due_date", date(2024, 2, 29)) == "2024-02-29"

    def test_record_ids_converted_to_strings(self):
        record = {"id": 5, "group_id": 2, "claimed_by": None, "points": 10, "active": True}

        converted = db_client._convert_record_ids(record)

        assert converted == {"id": "5", "group_id": "2", "claimed_by": None, "points": 10, "active": True}

    def test_sanitize_param_escapes_quotes(self):
        assert db_client.sanitize_param('say "hi"') == 'say \\"hi\\"'
        assert db_client.sanitize_param(None) == "None"


@pytest.mark.unit
class TestNameValidation:
    """Collection and field names are interpolated into SQL and must be identifiers."""

    def test_valid_collection(self):
        db_client._validate_collection_name("members")

    @pytest.mark.parametrize("name", ["members; DROP TABLE groups", "1tasks", "tasks-old", ""])
    def test_invalid_collection(self, name):
        with pytest.raises(ValueError, match="Invalid collection name"):
            db_client._validate_collection_name(name)

    def test_invalid_field(self):
        with pytest.raises(ValueError, match="Invalid field name"):
            db_client._validate_field_names(["points", "points = 0 --"])


@pytest.mark.unit
class TestRecordIdGuards:
    """Non-numeric ids never reach SQLite."""

    async def test_get_record(self):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="abc")

    async def test_delete_record(self):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.delete_record(collection="tasks", record_id="1 OR 1=1")

    async def test_empty_update(self):
        with pytest.raises(ValueError, match="Empty update payload"):
            await db_client.update_record(collection="tasks", record_id="1", data={})
