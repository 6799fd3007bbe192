"""History service for the append-only activity feed."""

import logging
from datetime import UTC, datetime
from typing import Any

from chorecoin.core import db_client
from chorecoin.core.config import constants, settings
from chorecoin.core.errors import ValidationError
from chorecoin.core.logging import span
from chorecoin.domain.history import HistoryAction


logger = logging.getLogger(__name__)


async def append_history(
    *,
    group_id: str,
    action: HistoryAction,
    member_name: str,
    task_name: str | None = None,
    points: int = 0,
    note: str | None = None,
) -> dict[str, Any]:
    """Append an entry to a group's activity feed.

    Entries are never updated or deleted; names are copied so the feed stays readable
    after members or tasks are removed.

    Args:
        group_id: Owning group ID
        action: Kind of event
        member_name: Acting or affected member ("Admin" for admin-created tasks)
        task_name: Task name for task events
        points: Signed point delta
        note: Optional free-text note

    Returns:
        Created history record
    """
    with span("history_service.append_history"):
        record = await db_client.create_record(
            collection="history",
            data={
                "group_id": group_id,
                "action": HistoryAction(action).value,
                "member_name": member_name,
                "task_name": task_name,
                "points": points,
                "note": note,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        logger.info("history_appended", extra={"group_id": group_id, "action": record["action"]})
        return record


async def list_recent(*, group_id: str, limit: int | None = None) -> list[dict[str, Any]]:
    """Get the most recent history entries for a group, newest first.

    Raises:
        ValidationError: If limit is outside 1..MAX_HISTORY_LIMIT
    """
    with span("history_service.list_recent"):
        limit = settings.history_default_limit if limit is None else limit

        # Guard: Keep page size bounded
        if limit < 1 or limit > constants.MAX_HISTORY_LIMIT:
            msg = f"History limit must be between 1 and {constants.MAX_HISTORY_LIMIT}"
            raise ValidationError(msg)

        return await db_client.list_records(
            collection="history",
            filter_query=f'group_id = "{db_client.sanitize_param(group_id)}"',
            sort="-timestamp,-id",
            per_page=limit,
        )
