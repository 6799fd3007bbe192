"""Conditional state transition functions for the task lifecycle.

Each transition writes only if the task still holds the status and claim holder the
caller observed, so a lost race surfaces as ConflictError instead of a silent
last-write-wins.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from chorecoin.core import db_client
from chorecoin.core.logging import span
from chorecoin.domain.task import TaskStatus


logger = logging.getLogger(__name__)


def _observed(task: dict[str, Any]) -> dict[str, Any]:
    return {"status": task["status"], "claimed_by": task.get("claimed_by")}


async def transition_to_claimed(*, task: dict[str, Any], member_id: str) -> dict[str, Any]:
    """Give the claim on an available or claimed task to ``member_id``."""
    with span("task_state_machine.transition_to_claimed"):
        # Guard: Completed tasks are terminal
        if task["status"] == TaskStatus.COMPLETED:
            msg = f"Cannot claim: task {task['id']} is in {task['status']} state"
            raise ValueError(msg)

        updated_record = await db_client.update_record(
            collection="tasks",
            record_id=task["id"],
            data={
                "status": TaskStatus.CLAIMED.value,
                "claimed_by": member_id,
                "claimed_at": datetime.now(UTC).isoformat(),
            },
            expected=_observed(task),
        )

        logger.info(
            "task_claimed",
            extra={"task_id": task["id"], "member_id": member_id, "previous_holder": task.get("claimed_by")},
        )
        return updated_record


async def transition_to_completed(*, task: dict[str, Any], member_id: str) -> dict[str, Any]:
    """Mark a claimed task completed by its holder."""
    with span("task_state_machine.transition_to_completed"):
        # Guard: Only the current holder completes
        if task["status"] != TaskStatus.CLAIMED or task.get("claimed_by") != member_id:
            msg = f"Cannot complete: task {task['id']} is in {task['status']} state"
            raise ValueError(msg)

        updated_record = await db_client.update_record(
            collection="tasks",
            record_id=task["id"],
            data={
                "status": TaskStatus.COMPLETED.value,
                "claimed_by": None,
                "completed_by": member_id,
                "completed_at": datetime.now(UTC).isoformat(),
            },
            expected=_observed(task),
        )

        logger.info("task_completed", extra={"task_id": task["id"], "member_id": member_id})
        return updated_record


async def revert_completion(*, task: dict[str, Any], member_id: str) -> dict[str, Any]:
    """Undo transition_to_completed, handing the claim back to ``member_id``."""
    with span("task_state_machine.revert_completion"):
        updated_record = await db_client.update_record(
            collection="tasks",
            record_id=task["id"],
            data={
                "status": TaskStatus.CLAIMED.value,
                "claimed_by": member_id,
                "completed_by": None,
                "completed_at": None,
            },
            expected={"status": TaskStatus.COMPLETED.value, "completed_by": member_id},
        )

        logger.warning("task_completion_reverted", extra={"task_id": task["id"], "member_id": member_id})
        return updated_record
