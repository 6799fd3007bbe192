"""SQLite schema management (code-first approach)."""

import logging
from typing import Any

from chorecoin.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "groups",
    "members",
    "tasks",
    "history",
]

_TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))"


def _get_collection_schema(*, collection_name: str) -> dict[str, Any]:
    """Get the expected schema for a collection.

    Fields are declared once here and rendered to DDL by ``_build_create_table``.
    Every collection also gets ``id``, ``created`` and ``updated`` columns.
    """
    schemas = {
        "groups": {
            "name": "groups",
            "fields": [
                {"name": "name", "type": "TEXT", "required": True},
                {"name": "code", "type": "TEXT", "required": True},
                {"name": "admin_pin", "type": "TEXT", "required": True},
            ],
            "indexes": ["CREATE UNIQUE INDEX IF NOT EXISTS idx_groups_code ON groups (code)"],
        },
        "members": {
            "name": "members",
            "fields": [
                {"name": "group_id", "type": "INTEGER", "required": True},
                {"name": "name", "type": "TEXT", "required": True},
                {"name": "points", "type": "INTEGER", "required": True, "default": "0"},
            ],
            "indexes": ["CREATE INDEX IF NOT EXISTS idx_members_group ON members (group_id, points)"],
        },
        "tasks": {
            "name": "tasks",
            "fields": [
                {"name": "group_id", "type": "INTEGER", "required": True},
                {"name": "name", "type": "TEXT", "required": True},
                {"name": "description", "type": "TEXT", "required": True, "default": "''"},
                {"name": "points", "type": "INTEGER", "required": True},
                # ISO date (YYYY-MM-DD), so text ordering is chronological
                {"name": "due_date", "type": "TEXT", "required": False},
                {"name": "recurrence_interval", "type": "INTEGER", "required": False},
                {"name": "recurrence_unit", "type": "TEXT", "required": False},
                {
                    "name": "status",
                    "type": "TEXT",
                    "required": True,
                    "values": ["available", "claimed", "completed"],
                },
                {"name": "claimed_by", "type": "INTEGER", "required": False},
                {"name": "claimed_at", "type": "TEXT", "required": False},
                {"name": "completed_by", "type": "INTEGER", "required": False},
                {"name": "completed_at", "type": "TEXT", "required": False},
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_tasks_group_status ON tasks (group_id, status)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks (due_date)",
            ],
        },
        "history": {
            "name": "history",
            "fields": [
                {"name": "group_id", "type": "INTEGER", "required": True},
                {
                    "name": "action",
                    "type": "TEXT",
                    "required": True,
                    "values": ["member_added", "task_created", "task_completed", "points_adjusted"],
                },
                {"name": "member_name", "type": "TEXT", "required": True},
                {"name": "task_name", "type": "TEXT", "required": False},
                {"name": "points", "type": "INTEGER", "required": True, "default": "0"},
                {"name": "note", "type": "TEXT", "required": False},
                {"name": "timestamp", "type": "TEXT", "required": True},
            ],
            "indexes": ["CREATE INDEX IF NOT EXISTS idx_history_group_time ON history (group_id, timestamp)"],
        },
    }
    return schemas[collection_name]


def _build_column(field: dict[str, Any]) -> str:
    parts = [field["name"], field["type"]]
    if field.get("required"):
        parts.append("NOT NULL")
    if "default" in field:
        parts.append(f"DEFAULT {field['default']}")
    if "values" in field:
        allowed = ", ".join(f"'{value}'" for value in field["values"])
        parts.append(f"CHECK ({field['name']} IN ({allowed}))")
    return " ".join(parts)


def _build_create_table(schema: dict[str, Any]) -> str:
    """Render a collection schema as a CREATE TABLE statement."""
    columns = [
        "id INTEGER PRIMARY KEY AUTOINCREMENT",
        *(_build_column(field) for field in schema["fields"]),
        f"created TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}",
        f"updated TEXT NOT NULL DEFAULT {_TIMESTAMP_DEFAULT}",
    ]
    return f"CREATE TABLE IF NOT EXISTS {schema['name']} ({', '.join(columns)})"


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes (idempotent)."""
    logger.info("Starting SQLite schema init...")
    conn = await db_client.get_connection(db_path=db_path)

    for collection_name in COLLECTIONS:
        schema = _get_collection_schema(collection_name=collection_name)
        await conn.execute(_build_create_table(schema))
        for index in schema.get("indexes", []):
            await conn.execute(index)
        logger.info("Ensured collection: %s", collection_name)

    await conn.commit()
    logger.info("SQLite schema init complete")
