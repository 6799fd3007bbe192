"""Pure Python in-memory database for unit testing."""

import asyncio
import copy
import re
from datetime import UTC, date, datetime
from typing import Any

from chorecoin.core.db_client import DatabaseError, RecordNotFoundError
from chorecoin.core.errors import ConflictError


_COMPARISON = re.compile(r"""^(\w+)\s*(!=|=|~)\s*(['"])(.*)\3$""")


def _stored(value: Any) -> Any:
    """Mirror the real client's serialization of dates and enums."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, str):
        return str(value)
    return value


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Provides a simple in-memory implementation of the db_client interface,
    including conditional updates, so services can be tested without SQLite.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1000
        self.update_calls: list[dict[str, Any]] = []

    async def create_record(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record in the specified collection.

        Raises:
            DatabaseError: If data is not a dictionary
        """
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        if collection not in self._collections:
            self._collections[collection] = {}

        record_id = str(self._id_counter)
        self._id_counter += 1

        now = datetime.now(UTC).isoformat()
        record = {
            "id": record_id,
            "created": now,
            "updated": now,
            **{key: _stored(value) for key, value in data.items()},
        }
        self._collections[collection][record_id] = record

        return copy.deepcopy(record)

    async def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID.

        Raises:
            RecordNotFoundError: If record not found
        """
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return copy.deepcopy(records[record_id])

    async def update_record(
        self,
        collection: str,
        record_id: str,
        data: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Update an existing record, optionally only if ``expected`` still holds.

        The precondition is checked after yielding to the event loop, so concurrent
        writers that read the same state race the way they would against a real store.

        Raises:
            RecordNotFoundError: If record not found
            ConflictError: If an expected value no longer matches
        """
        self.update_calls.append(
            {"collection": collection, "record_id": record_id, "data": dict(data), "expected": dict(expected or {})}
        )

        await asyncio.sleep(0.001)

        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

        record = records[record_id]
        for key, value in (expected or {}).items():
            if record.get(key) != _stored(value):
                raise ConflictError(f"Record {record_id} in {collection} changed concurrently ({key})")

        record.update({key: _stored(value) for key, value in data.items()})
        record["updated"] = datetime.now(UTC).isoformat()

        return copy.deepcopy(record)

    async def delete_record(self, collection: str, record_id: str) -> None:
        """Delete a record from the collection.

        Raises:
            RecordNotFoundError: If record not found
        """
        records = self._collections.get(collection, {})
        if record_id not in records:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        del records[record_id]

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with optional filtering, multi-field sorting and pagination."""
        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]

        records = self._apply_sort(records, sort or "+id")

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def get_first_record(self, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Get the first matching record or None."""
        records = await self.list_records(collection, filter_query=filter_query, per_page=1)
        return records[0] if records else None

    def all(self, collection: str) -> list[dict[str, Any]]:
        """Every record of a collection in insertion order (test helper)."""
        return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate filter expression against a record.

        Supports ``field = "v"``, ``field != "v"``, ``field ~ "v"`` joined with ``&&``,
        and parenthesized ``||`` groups.

        Raises:
            DatabaseError: For invalid filter syntax
        """
        for condition in (c.strip() for c in filter_str.split("&&")):
            if condition.startswith("(") and condition.endswith(")"):
                options = [o.strip() for o in condition[1:-1].split("||")]
                if not any(self._matches(option, record) for option in options):
                    return False
            elif not self._matches(condition, record):
                return False
        return True

    @staticmethod
    def _matches(condition: str, record: dict[str, Any]) -> bool:
        match = _COMPARISON.match(condition)
        if not match:
            raise DatabaseError(f"Invalid filter syntax: {condition}")

        field, op, _, value = match.groups()
        actual = "" if record.get(field) is None else str(record.get(field))
        if op == "=":
            return actual == value
        if op == "!=":
            return actual != value
        return value.lower() in actual.lower()

    def _apply_sort(self, records: list[dict], sort: str) -> list[dict]:
        """Sort records by comma-separated fields, each prefixed with + or -.

        NULLs sort first ascending (as in SQLite); digit strings compare numerically.
        """

        def sort_key(field: str):
            def key(record: dict) -> tuple:
                value = record.get(field)
                if value is None:
                    return (0, 0)
                if isinstance(value, str) and value.isdigit():
                    return (1, int(value))
                return (1, value)

            return key

        terms = [t.strip() for t in sort.split(",") if t.strip()]
        # Stable sort: apply the least significant key first
        for term in reversed(terms):
            reverse = term.startswith("-")
            field = term.lstrip("+-")
            records = sorted(records, key=sort_key(field), reverse=reverse)
        return records
